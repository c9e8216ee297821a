import pytest

from renderer.core.records import (
    SAMPLE_RECORD,
    CardRecord,
    default_label,
    format_price,
    label_text,
    resolve,
)


def test_resolve_bindings():
    assert resolve("artist", SAMPLE_RECORD) == "Miles Davis"
    assert resolve("countryYear", SAMPLE_RECORD) == "US • 1959"
    assert resolve("price", SAMPLE_RECORD) == "¥2,800"
    assert resolve("badges", SAMPLE_RECORD) == "Recommended Must have"
    assert resolve("discogsUrl", SAMPLE_RECORD) == "https://www.discogs.com/release/1234567"


def test_missing_values_fall_back():
    record = CardRecord(title="Untitled")
    assert resolve("label", record) == "Unknown"
    assert resolve("countryYear", record) == "Unknown • Unknown"
    assert resolve("discogsUrl", record) == ""
    assert resolve("price", record) == "FREE"


def test_custom_and_unknown_bindings():
    assert resolve("custom", SAMPLE_RECORD, "Staff pick") == "Staff pick"
    assert resolve("custom", SAMPLE_RECORD) == ""
    assert resolve("matrixNumber", SAMPLE_RECORD) == ""


def test_format_price():
    assert format_price(0) == "FREE"
    assert format_price(1200000) == "¥1,200,000"


def test_record_validation():
    with pytest.raises(ValueError):
        CardRecord(price=-1)
    with pytest.raises(ValueError):
        CardRecord(badges=("a", "b", "c", "d"))
    with pytest.raises(ValueError):
        CardRecord(badges=("a", "a"))


def test_record_name():
    assert SAMPLE_RECORD.name == "Miles Davis - Kind of Blue"
    assert CardRecord(artist="Can").name == "Can"
    assert CardRecord().name == "card"


def test_from_payload_accepts_camel_case_discogs_id():
    record = CardRecord.from_payload({"title": "Tago Mago", "price": "1500", "discogsId": 42, "badges": ["Rare"]})
    assert record.price == 1500
    assert record.discogs_id == "42"
    assert record.badges == ("Rare",)


def test_labels():
    assert default_label("countryYear") == "Country / Year"
    assert default_label("somethingElse") == "somethingElse"
    assert label_text("price", "Cost") == "Cost"
    assert label_text("price") == "Price"
