from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, List, Optional

from notamper.cli.client_cmds import register_client_commands
from notamper.client import NoTamperClient, NoTamperClientError
from notamper.config import BatchSchedule, ClientSettings, ConfigurationError, PropertiesStore
from notamper.core.canonical import canonical_encode, is_digest_hex
from notamper.core.engine import HashingPolicy, hash_payload, policy_from_titles, verify_digest
from notamper.core.errors import CanonicalizationError
from notamper.core.records import batch_from_csv, standardize
from notamper.forensic import (
    build_hash_receipt,
    generate_ed25519_keypair,
    maybe_load_public_key_pem,
    sign_receipt,
    verify_receipt,
)
from notamper.processing import open_record_source, process_batch, processing_status
from notamper.utils.json_safe import to_jsonable


def _print_json(obj: Any) -> None:
    print(json.dumps(to_jsonable(obj), indent=2, sort_keys=True, ensure_ascii=False))


def _read_json(path: str) -> Any:
    """Read a JSON file."""

    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_records(path: str, *, csv_input: bool = False, source_id: Optional[str] = None) -> Any:
    """Load a batch from a CSV export, or a record/batch mapping from JSON."""

    if csv_input or path.lower().endswith(".csv"):
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            return batch_from_csv(f, source_id=source_id)
    data = _read_json(path)
    if isinstance(data, list):
        return {"records": data}
    return data


def _policy_from_args(args: argparse.Namespace) -> HashingPolicy:
    return policy_from_titles(
        standardize_first=not getattr(args, "no_standardize", False),
        include=getattr(args, "include", None),
        exclude=getattr(args, "exclude", None),
    )


def _parse_meta(pairs: Optional[List[str]]) -> dict:
    out = {}
    for item in pairs or []:
        if "=" not in item:
            raise ConfigurationError(f"metadata must be key=value, got {item!r}")
        k, v = item.split("=", 1)
        out[k.strip()] = v
    return out


def cmd_canonicalize(args: argparse.Namespace) -> int:
    """Print the canonical encoding of a JSON file."""

    print(canonical_encode(_read_json(args.path)))
    return 0


def cmd_standardize(args: argparse.Namespace) -> int:
    """Print the standardized form of records."""

    data = _load_records(args.path, csv_input=args.csv)
    _print_json(standardize(data))
    return 0


def cmd_hash(args: argparse.Namespace) -> int:
    """Hash a record or a batch of records."""

    data = _load_records(args.path, csv_input=args.csv, source_id=args.source_id)
    result = hash_payload(data, _policy_from_args(args))
    out = {"digest": result.digest, "record_count": result.record_count}
    if args.show_canonical:
        out["canonical"] = result.canonical.decode("utf-8")
    _print_json(out)
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    """Recompute a digest and compare. Exit 1 on mismatch."""

    if not is_digest_hex(args.digest):
        print("error: digest must be 64 lowercase hex characters", file=sys.stderr)
        return 2
    data = _load_records(args.path, csv_input=args.csv)
    ok = verify_digest(data, args.digest, _policy_from_args(args))
    print("OK" if ok else "MISMATCH")
    return 0 if ok else 1


def cmd_keygen(args: argparse.Namespace) -> int:
    """Generate an Ed25519 keypair for signing receipts.

    Security notes:
    - Store the private key securely. Anyone with it can forge receipts.

    """

    kp = generate_ed25519_keypair(os.path.abspath(args.out_dir), prefix=args.prefix)
    _print_json({"private_key": kp.private_key_path, "public_key": kp.public_key_path})
    return 0


def cmd_receipt(args: argparse.Namespace) -> int:
    """Hash records and write a (optionally signed) receipt."""

    data = _load_records(args.path, csv_input=args.csv)
    result = hash_payload(data, _policy_from_args(args))
    receipt = build_hash_receipt(result, metadata=_parse_meta(args.meta))
    if args.sign_key:
        receipt = sign_receipt(receipt, args.sign_key, signer_id=args.signer_id)

    text = json.dumps(receipt, indent=2, sort_keys=True, ensure_ascii=False)
    if args.out:
        Path(args.out).write_text(text + "\n", encoding="utf-8")
        _print_json({"digest": result.digest, "saved_to": os.path.abspath(args.out)})
    else:
        print(text)
    return 0


def cmd_verify_receipt(args: argparse.Namespace) -> int:
    """Verify a receipt's signature and, when records are given, its digest."""

    receipt = _read_json(args.receipt)
    data = _load_records(args.data, csv_input=args.csv) if args.data else None
    report = verify_receipt(
        receipt,
        public_key=maybe_load_public_key_pem(args.pubkey),
        data=data,
        policy=_policy_from_args(args),
    )
    _print_json(
        {
            "ok": report.ok,
            "digest_ok": report.digest_ok,
            "signature_present": report.signature_present,
            "signature_ok": report.signature_ok,
        }
    )
    return 0 if report.ok else 1


def cmd_config_set_token(args: argparse.Namespace) -> int:
    PropertiesStore(args.properties).save_access_token(args.token)
    print("access token saved")
    return 0


def cmd_config_clear_token(args: argparse.Namespace) -> int:
    PropertiesStore(args.properties).remove_access_token()
    print("access token removed")
    return 0


def cmd_config_schedule(args: argparse.Namespace) -> int:
    """Show or update the batch schedule."""

    store = PropertiesStore(args.properties)
    current = store.batch_schedule().to_mapping()
    updates = {
        "enabled": args.enabled,
        "frequency": args.frequency,
        "time": args.time,
        "interval": args.interval,
        "day": args.day,
    }
    changed = {k: v for k, v in updates.items() if v is not None}
    if changed:
        current.update(changed)
        store.save_batch_schedule(BatchSchedule.from_mapping(current))
    _print_json(store.batch_schedule())
    return 0


def cmd_config_status(args: argparse.Namespace) -> int:
    source = open_record_source(args.source, source_id=args.source_id)
    _print_json(processing_status(source, PropertiesStore(args.properties)))
    return 0


def _client_settings(args: argparse.Namespace) -> ClientSettings:
    """Settings from env, then stored token, then command-line overrides."""

    settings = ClientSettings.from_env()
    if getattr(args, "endpoint", None):
        settings = replace(settings, api_endpoint=args.endpoint.rstrip("/"))
    token = getattr(args, "token", None) or settings.access_token
    if not token and hasattr(args, "properties"):
        token = PropertiesStore(args.properties).access_token()
    return settings.with_token(token)


def cmd_process(args: argparse.Namespace) -> int:
    """Hash all responses of a source and submit the batch digest."""

    source = open_record_source(args.source, source_id=args.source_id)
    store = PropertiesStore(args.properties)
    client = NoTamperClient(_client_settings(args))
    result = process_batch(source, client, store=store, policy=_policy_from_args(args))
    _print_json(result)
    return 0 if result.success else 2


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the verification API server.

    Security notes:
    - If NOTAMPER_API_KEYS is set, requests must provide X-NoTamper-API-Key.
    - Bind to 127.0.0.1 by default.

    """

    try:
        import uvicorn
    except ImportError as e:
        print(f"error: uvicorn is required to serve the API: {e}", file=sys.stderr)
        return 2

    from notamper.api.server import create_app

    uvicorn.run(create_app(), host=args.host, port=int(args.port), log_level=str(args.log_level).lower())
    return 0


def _add_policy_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--csv", action="store_true", help="Treat input as a CSV export")
    p.add_argument(
        "--no-standardize",
        action="store_true",
        help="Hash the full records instead of the CSV-comparable form",
    )
    p.add_argument("--include", action="append", default=None, help="Only hash this field title (repeatable)")
    p.add_argument("--exclude", action="append", default=None, help="Skip this field title (repeatable)")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="notamper", description="Tamper-evident hashing for form responses")
    p.add_argument("--log-level", default="warning", help="Logging level (debug, info, warning, ...)")
    sub = p.add_subparsers(dest="cmd", required=True)

    cp = sub.add_parser("canonicalize", help="Print the canonical encoding of a JSON file")
    cp.add_argument("path")
    cp.set_defaults(func=cmd_canonicalize)

    sp = sub.add_parser("standardize", help="Print the CSV-comparable form of records")
    sp.add_argument("path")
    sp.add_argument("--csv", action="store_true", help="Treat input as a CSV export")
    sp.set_defaults(func=cmd_standardize)

    hp = sub.add_parser("hash", help="Hash a record or batch (JSON or CSV)")
    hp.add_argument("path")
    hp.add_argument("--source-id", default=None, help="Source identifier for CSV input")
    hp.add_argument("--show-canonical", action="store_true", help="Also print the canonical encoding")
    _add_policy_args(hp)
    hp.set_defaults(func=cmd_hash)

    vp = sub.add_parser("verify", help="Check records against a digest (exit 1 on mismatch)")
    vp.add_argument("path")
    vp.add_argument("digest")
    _add_policy_args(vp)
    vp.set_defaults(func=cmd_verify)

    kg = sub.add_parser("keygen", help="Generate an Ed25519 keypair for signing receipts")
    kg.add_argument("--out-dir", default=".", help="Output directory")
    kg.add_argument("--prefix", default="notamper_ed25519", help="Key filename prefix")
    kg.set_defaults(func=cmd_keygen)

    rp = sub.add_parser("receipt", help="Hash records and write a hash receipt")
    rp.add_argument("path")
    rp.add_argument("--out", default=None, help="Receipt output path (default: stdout)")
    rp.add_argument("--sign-key", default=None, help="Ed25519 private key (PEM) to sign with")
    rp.add_argument("--signer-id", default=None, help="Signer identifier recorded in the signature")
    rp.add_argument("--meta", action="append", default=None, help="Receipt metadata key=value (repeatable)")
    _add_policy_args(rp)
    rp.set_defaults(func=cmd_receipt)

    vr = sub.add_parser("verify-receipt", help="Verify a hash receipt")
    vr.add_argument("receipt")
    vr.add_argument("--data", default=None, help="Records to recompute the digest from")
    vr.add_argument("--pubkey", default=None, help="Ed25519 public key (PEM)")
    _add_policy_args(vr)
    vr.set_defaults(func=cmd_verify_receipt)

    cfg = sub.add_parser("config", help="Stored settings (token, schedule)")
    cfg.add_argument("--properties", default=None, help="Properties file (default: ~/.notamper/properties.json)")
    csub = cfg.add_subparsers(dest="config_cmd", required=True)

    st = csub.add_parser("set-token", help="Validate and store the API access token")
    st.add_argument("token")
    st.set_defaults(func=cmd_config_set_token)

    ct = csub.add_parser("clear-token", help="Remove the stored access token")
    ct.set_defaults(func=cmd_config_clear_token)

    sc = csub.add_parser("schedule", help="Show or update the batch schedule")
    en = sc.add_mutually_exclusive_group()
    en.add_argument("--enable", dest="enabled", action="store_const", const=True, default=None)
    en.add_argument("--disable", dest="enabled", action="store_const", const=False)
    sc.add_argument("--frequency", choices=["manual", "interval", "daily", "weekly"], default=None)
    sc.add_argument("--time", default=None, help="HH:MM")
    sc.add_argument("--interval", type=int, default=None, help="Hours between runs (interval)")
    sc.add_argument("--day", type=int, default=None, help="0=Sunday .. 6=Saturday (weekly)")
    sc.set_defaults(func=cmd_config_schedule)

    ss = csub.add_parser("status", help="Show processing status for a source")
    ss.add_argument("source", help="JSON or CSV export")
    ss.add_argument("--source-id", default=None)
    ss.set_defaults(func=cmd_config_status)

    pp = sub.add_parser("process", help="Hash all responses of a source and submit the digest")
    pp.add_argument("source", help="JSON or CSV export")
    pp.add_argument("--source-id", default=None)
    pp.add_argument("--properties", default=None, help="Properties file")
    pp.add_argument("--endpoint", default=None, help="API endpoint")
    pp.add_argument("--token", default=None, help="Access token (default: env or stored)")
    pp.add_argument("--no-standardize", action="store_true", help=argparse.SUPPRESS)
    pp.add_argument("--include", action="append", default=None, help="Only hash this field title")
    pp.add_argument("--exclude", action="append", default=None, help="Skip this field title")
    pp.set_defaults(func=cmd_process)

    sv = sub.add_parser("serve", help="Run the verification API")
    sv.add_argument("--host", default="127.0.0.1")
    sv.add_argument("--port", default=8080, type=int)
    sv.set_defaults(func=cmd_serve)

    register_client_commands(sub)
    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=str(args.log_level).upper(), format="%(levelname)s %(name)s %(message)s")
    try:
        return int(args.func(args))
    except (CanonicalizationError, ConfigurationError, NoTamperClientError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except (OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
