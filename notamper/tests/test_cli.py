from __future__ import annotations

import json

from notamper.cli.main import build_parser, main
from notamper.config import PropertiesStore
from notamper.core.engine import hash_payload

TOKEN = "ak_abcdefghijklmnop"
DATA = {
    "records": [
        {"record_id": "a", "fields": [{"title": "Name", "value": "Alice"}, {"title": "Age", "value": 30}]},
        {"record_id": "b", "fields": [{"title": "Name", "value": "Bob"}, {"title": "Age", "value": "25"}]},
    ]
}
CSV_EXPORT = "Timestamp,Name,Age\n2024-03-01 10:00,Alice,30\n2024-03-01 11:00,Bob,25\n"


def _write(tmp_path, name, content) -> str:
    p = tmp_path / name
    p.write_text(content if isinstance(content, str) else json.dumps(content), encoding="utf-8")
    return str(p)


def test_parser_collects_repeatable_policy_args():
    parser = build_parser()
    args = parser.parse_args(["hash", "x.json", "--exclude", "Age"])
    assert args.cmd == "hash"
    assert args.exclude == ["Age"]


def test_canonicalize(tmp_path, capsys):
    path = _write(tmp_path, "v.json", {"b": 1, "a": [2, 1]})
    assert main(["canonicalize", path]) == 0
    assert capsys.readouterr().out.strip() == '{"a":[1,2],"b":1}'


def test_hash_json_and_csv_agree(tmp_path, capsys):
    expected = hash_payload(DATA).digest

    assert main(["hash", _write(tmp_path, "d.json", DATA)]) == 0
    assert json.loads(capsys.readouterr().out)["digest"] == expected

    assert main(["hash", _write(tmp_path, "export.csv", CSV_EXPORT)]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["digest"] == expected
    assert out["record_count"] == 2


def test_standardize(tmp_path, capsys):
    assert main(["standardize", _write(tmp_path, "d.json", DATA)]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["record_count"] == 2
    assert out["records"][1]["fields"] == [{"title": "Age", "value": "25"}, {"title": "Name", "value": "Bob"}]


def test_verify_exit_codes(tmp_path, capsys):
    """0 on match, 1 on mismatch, 2 on a malformed digest."""
    path = _write(tmp_path, "d.json", DATA)
    digest = hash_payload(DATA).digest

    assert main(["verify", path, digest]) == 0
    assert capsys.readouterr().out.strip() == "OK"

    assert main(["verify", path, "0" * 64]) == 1
    assert capsys.readouterr().out.strip() == "MISMATCH"

    assert main(["verify", path, "nope"]) == 2


def test_engine_error_exit_code(tmp_path, capsys):
    path = _write(tmp_path, "bad.json", {"records": [], "record_count": 1})
    assert main(["hash", path]) == 2
    assert capsys.readouterr().err.startswith("error:")


def test_missing_file_exit_code(tmp_path, capsys):
    assert main(["hash", str(tmp_path / "missing.json")]) == 2
    assert "error:" in capsys.readouterr().err


def test_keygen_receipt_verify_receipt(tmp_path, capsys):
    assert main(["keygen", "--out-dir", str(tmp_path / "keys"), "--prefix", "t"]) == 0
    keys = json.loads(capsys.readouterr().out)

    data_path = _write(tmp_path, "d.json", DATA)
    receipt_path = str(tmp_path / "receipt.json")
    rc = main(
        [
            "receipt",
            data_path,
            "--out",
            receipt_path,
            "--sign-key",
            keys["private_key"],
            "--signer-id",
            "cli-test",
            "--meta",
            "formId=form-1",
        ]
    )
    assert rc == 0
    assert json.loads(capsys.readouterr().out)["digest"] == hash_payload(DATA).digest

    rc = main(["verify-receipt", receipt_path, "--data", data_path, "--pubkey", keys["public_key"]])
    assert rc == 0
    report = json.loads(capsys.readouterr().out)
    assert report == {"ok": True, "digest_ok": True, "signature_present": True, "signature_ok": True}

    changed = dict(DATA, records=DATA["records"][:1])
    rc = main(["verify-receipt", receipt_path, "--data", _write(tmp_path, "c.json", changed)])
    assert rc == 1


def test_config_commands(tmp_path, capsys):
    props = str(tmp_path / "props.json")

    assert main(["config", "--properties", props, "set-token", TOKEN]) == 0
    assert PropertiesStore(props).access_token() == TOKEN

    assert main(["config", "--properties", props, "set-token", "bad"]) == 2

    assert main(["config", "--properties", props, "schedule", "--enable", "--frequency", "weekly", "--day", "5"]) == 0
    capsys.readouterr()
    schedule = PropertiesStore(props).batch_schedule()
    assert schedule.enabled and schedule.frequency == "weekly" and schedule.day == 5

    source = _write(tmp_path, "d.json", DATA)
    assert main(["config", "--properties", props, "status", source]) == 0
    status = json.loads(capsys.readouterr().out)
    assert status["total_responses"] == 2
    assert status["has_access_token"] is True

    assert main(["config", "--properties", props, "clear-token"]) == 0
    assert PropertiesStore(props).access_token() is None


def test_process_without_token_fails(tmp_path, capsys, monkeypatch):
    monkeypatch.delenv("NOTAMPER_ACCESS_TOKEN", raising=False)
    source = _write(tmp_path, "d.json", DATA)
    rc = main(["process", source, "--properties", str(tmp_path / "props.json")])
    assert rc == 2
    out = json.loads(capsys.readouterr().out)
    assert out["success"] is False
    assert out["digest"] == hash_payload(DATA).digest
