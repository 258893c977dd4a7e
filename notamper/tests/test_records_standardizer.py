from __future__ import annotations

from datetime import date

import pytest

from notamper.core.errors import InputShapeError
from notamper.core.records import (
    Batch,
    Field,
    FieldKind,
    Record,
    coerce_value,
    normalize_record,
    normalize_value,
    standardize,
    standardize_record,
)


def test_field_kind_parse():
    assert FieldKind.parse("TEXT") is FieldKind.SHORT_TEXT
    assert FieldKind.parse("checkbox") is FieldKind.CHECKBOX
    assert FieldKind.parse("MULTIPLE_CHOICE") is FieldKind.OTHER
    assert FieldKind.parse(None) is FieldKind.OTHER
    assert FieldKind.parse(FieldKind.GRID) is FieldKind.GRID


def test_record_from_addon_export_names():
    r = Record.from_mapping(
        {
            "responseId": "resp-1",
            "timestamp": "2024-03-01T10:00:00Z",
            "items": [{"title": "Q", "response": "A", "type": "TEXT", "itemId": 7}],
        }
    )
    assert r.record_id == "resp-1"
    assert r.fields == (Field(title="Q", value="A", kind=FieldKind.SHORT_TEXT, field_id="7"),)


def test_batch_from_mapping():
    b = Batch.from_mapping(
        {
            "formId": "form-1",
            "formTitle": "Survey",
            "responseCount": 1,
            "responses": [{"responseId": "r", "items": []}],
        }
    )
    assert b.source_id == "form-1"
    assert b.record_count == 1
    assert b.metadata == {"formTitle": "Survey"}
    assert b.first_record_id == b.last_record_id == "r"


def test_batch_rejects_bad_shapes():
    with pytest.raises(InputShapeError):
        Batch(records=(Record(),), record_count=3)
    with pytest.raises(InputShapeError):
        Batch.from_mapping({"records": "nope"})
    with pytest.raises(InputShapeError):
        Batch.from_mapping({"records": [], "record_count": "2"})
    with pytest.raises(InputShapeError):
        Record.from_mapping({"fields": [1]})


def test_normalize_value():
    assert normalize_value(FieldKind.CHECKBOX, ["b", "a"]) == ["a", "b"]
    assert list(normalize_value(FieldKind.GRID, {"r2": "x", "r1": "y"})) == ["r1", "r2"]
    assert list(normalize_value(FieldKind.CHECKBOX_GRID, {"b": ["1"], "a": ["2"]})) == ["a", "b"]
    assert normalize_value(FieldKind.SHORT_TEXT, None) == ""
    assert normalize_value(FieldKind.OTHER, ["b", "a"]) == ["b", "a"]


def test_normalize_record_keeps_field_order():
    r = Record(
        fields=(
            Field("Z", None, FieldKind.SHORT_TEXT),
            Field("A", ["y", "x"], FieldKind.CHECKBOX),
        )
    )
    n = normalize_record(r)
    assert [f.title for f in n.fields] == ["Z", "A"]
    assert n.fields[0].value == ""
    assert n.fields[1].value == ["x", "y"]


def test_coerce_value():
    assert coerce_value(None) == ""
    assert coerce_value(True) == "true"
    assert coerce_value(30) == "30"
    assert coerce_value(30.0) == "30"
    assert coerce_value(date(2024, 1, 2)) == "2024-01-02"
    assert coerce_value(["b", "a"]) == '["a","b"]'
    assert coerce_value({"r2": "x", "r1": "y"}) == '{"r1":"y","r2":"x"}'
    with pytest.raises(InputShapeError):
        coerce_value(object())


def test_standardize_batch_shape():
    out = standardize(
        {
            "records": [
                {
                    "record_id": "x",
                    "timestamp": "t",
                    "fields": [
                        {"title": "Name", "value": "Alice", "field_id": "1", "kind": "SHORT_TEXT"},
                        {"title": "Age", "value": 30},
                    ],
                },
                {"record_id": "y", "fields": [{"title": "Name", "value": None}]},
            ]
        }
    )
    assert out == {
        "record_count": 2,
        "records": [
            {
                "record_id": "record-0",
                "fields": [{"title": "Age", "value": "30"}, {"title": "Name", "value": "Alice"}],
            },
            {"record_id": "record-1", "fields": [{"title": "Name", "value": ""}]},
        ],
    }


def test_standardize_is_idempotent():
    once = standardize({"records": [{"fields": [{"title": "B", "value": 1}, {"title": "A", "value": ["y", "x"]}]}]})
    assert standardize(once) == once


def test_standardize_single_record_is_a_one_record_batch():
    out = standardize({"fields": [{"title": "Q", "value": "A"}]})
    assert out == {"record_count": 1, "records": [{"record_id": "record-0", "fields": [{"title": "Q", "value": "A"}]}]}
    assert standardize_record(Record(fields=(Field("Q", "A"),))) == out


def test_standardize_keeps_input_order_for_equal_titles():
    """Title sort is stable."""
    out = standardize(Record(fields=(Field("Q", "x"), Field("Q", "y"))))
    assert out["records"][0]["fields"] == [{"title": "Q", "value": "x"}, {"title": "Q", "value": "y"}]


def test_standardize_passes_through_other_input():
    data = [1, 2]
    assert standardize(data) is data
    assert standardize({"foo": 1}) == {"foo": 1}
    assert standardize(None) is None
    assert standardize("text") == "text"
