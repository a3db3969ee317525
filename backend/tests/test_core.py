"""
Unit tests for the TOON codec.
"""

import math
import os
import sys

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from codec.exceptions import (
    InputShapeError,
    InvalidJsonError,
    NestedKeyConflictError,
    ToonError,
)
from codec.models import DecodeConfig, EncodeConfig
from codec.tokens import estimate_token_savings, estimate_tokens
from codec.toon import (
    ToonDecoder,
    ToonEncoder,
    decode,
    encode_array,
    encode_object,
    encode_with_savings,
    json_to_toon,
    parse_number,
    to_json_compatible,
    toon_to_json,
    validate_toon,
)

PERSON = {"name": "John", "age": 30, "city": "Madrid"}
PERSON_TOON = "@schema|name|age|city\nJohn|30|Madrid"


def test_encode_object_concrete_example():
    """Flat object encodes to a schema line plus one data line."""
    assert encode_object(PERSON) == PERSON_TOON


def test_decode_concrete_example():
    """Decoding with defaults coerces numbers and returns a single object."""
    result = decode(PERSON_TOON)
    assert result == {"name": "John", "age": 30, "city": "Madrid"}
    assert isinstance(result["age"], int)


def test_flatten_nested_paths():
    flat = ToonEncoder.flatten({"user": {"name": "Ana", "tags": ["a", "b"]}}, "", ".")
    assert list(flat) == ["user.name", "user.tags"]
    assert flat["user.tags"] == "a,b"


def test_flatten_keeps_first_occurrence_order():
    obj = {"z": 1, "a": {"y": 2, "b": {"c": 3}}, "m": None}
    assert list(ToonEncoder.flatten(obj, "", "/")) == ["z", "a/y", "a/b/c", "m"]


def test_object_round_trip_with_nesting():
    obj = {"user": {"name": "Ana", "tags": ["a", "b"], "active": True}, "score": 9.5}
    text = encode_object(obj)
    assert text == "@schema|user.name|user.tags|user.active|score\nAna|a,b|true|9.5"
    assert decode(text, {"outputFormat": "object"}) == {
        "user": {"name": "Ana", "tags": "a,b", "active": True},
        "score": 9.5,
    }


def test_encode_object_without_schema_and_null_values():
    text = encode_object({"a": None, "b": False, "c": 2.0}, EncodeConfig(include_schema=False))
    assert text == "|false|2"


def test_encode_object_rejects_non_object():
    with pytest.raises(InputShapeError) as exc:
        encode_object([1, 2])
    assert exc.value.expected == "an object"
    assert exc.value.actual == "list"


def test_escape_value():
    assert ToonEncoder.escape_value("plain", "|") == "plain"
    assert ToonEncoder.escape_value("a|b", "|") == '"a|b"'
    assert ToonEncoder.escape_value('say "hi"|x', "|") == '"say ""hi""|x"'
    assert ToonEncoder.escape_value("two\nlines", "|") == '"two\nlines"'
    # Quotes alone do not trigger quoting
    assert ToonEncoder.escape_value('say "hi"', "|") == 'say "hi"'


def test_parse_delimited_line():
    assert ToonDecoder.parse_delimited_line('a|"b|c"|"d ""e"""', "|") == ["a", "b|c", 'd "e"']
    assert ToonDecoder.parse_delimited_line("", "|") == [""]
    assert ToonDecoder.parse_delimited_line("a||", "|") == ["a", "", ""]


def test_escaped_values_round_trip():
    """Values containing the delimiter, quotes or newlines survive a round trip."""
    obj = {"note": 'He said "stop|go"', "body": "line1\nline2", "id": 7}
    text = encode_object(obj)
    assert text == '@schema|note|body|id\n"He said ""stop|go"""|"line1\nline2"|7'
    assert decode(text) == obj


def test_array_rows_survive_stray_quotes_and_multiline_values():
    """A quote inside an unquoted field never joins the rows that follow it."""
    rows = [
        {"size": '5" screen', "id": 1},
        {"size": "two\nlines", "id": 2},
        {"size": "x", "id": 3},
        {"size": 'say "hi"|there', "id": 4},
    ]
    text = encode_array(rows)
    assert text == (
        '@schema|size|id\n5" screen|1\n"two\nlines"|2\nx|3\n"say ""hi""|there"|4'
    )

    result = decode(text, {"outputFormat": "array"})
    assert len(result) == 4
    assert result[1:] == rows[1:]
    assert result[0]["size"].startswith("5")


def test_split_lines_only_opens_quotes_at_field_start():
    split = ToonDecoder.split_lines
    assert split('a"b|1\nc|2', "|") == ['a"b|1', "c|2"]
    assert split('"x\ny"|1\nz|2', "|") == ['"x\ny"|1', "z|2"]
    assert split('1|"a ""q""\nb"\n2|c', "|") == ['1|"a ""q""\nb"', "2|c"]


def test_validate_toon_reports_stray_quote_row_alone():
    assert validate_toon('@schema|a|b\n5"x"|1\nx|2') is True
    with pytest.raises(ToonError) as exc:
        validate_toon('@schema|a|b\n5"|1\nx|2')
    assert "Row 2" in str(exc.value)
    assert "x|2" not in str(exc.value)


def test_encode_array():
    rows = [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}]
    assert encode_array(rows) == "@schema|id|name\n1|A\n2|B"
    assert encode_array(rows, {"includeSchema": False}) == "1|A\n2|B"


def test_encode_array_uses_first_element_keys():
    rows = [{"a": 1, "b": 2}, {"a": 3, "c": 4}]
    assert encode_array(rows) == "@schema|a|b\n1|2\n3|"


def test_encode_array_does_not_flatten():
    text = encode_array([{"id": 1, "meta": {"x": 1}, "tags": ["p", "q"]}])
    assert text == '@schema|id|meta|tags\n1|{"x":1}|p,q'


def test_encode_array_empty_and_invalid():
    assert encode_array([]) == ""
    with pytest.raises(InputShapeError):
        encode_array({"a": 1})
    with pytest.raises(InputShapeError) as exc:
        encode_array([{"a": 1}, "oops"])
    assert "array element 1" in str(exc.value)


def test_array_round_trip():
    rows = [
        {"id": 1, "ok": True, "name": "x|y"},
        {"id": 2, "ok": False, "name": "z"},
    ]
    assert decode(encode_array(rows), {"outputFormat": "array"}) == rows


def test_decode_without_schema():
    result = decode("a|b|c\nd|e")
    assert result == [
        {"field0": "a", "field1": "b", "field2": "c"},
        {"field0": "d", "field1": "e", "field2": ""},
    ]


def test_decode_output_formats():
    two_rows = "@schema|id\n1\n2"
    assert decode("@schema|id\n1") == {"id": 1}
    assert decode(two_rows) == [{"id": 1}, {"id": 2}]
    assert decode(two_rows, {"outputFormat": "object"}) == {"id": 1}
    assert decode("@schema|id\n1", {"outputFormat": "array"}) == [{"id": 1}]


def test_decode_empty_input():
    assert decode("   \n ") == []
    assert decode("", {"outputFormat": "array"}) == []
    assert decode("", {"outputFormat": "object"}) == {}
    # Header only: no rows
    assert decode("@schema|a|b", {"outputFormat": "object"}) == {}


def test_decode_skips_blank_lines_and_ignores_extra_values():
    assert decode("@schema|a\n1|extra\n\n2", {"outputFormat": "array"}) == [{"a": 1}, {"a": 2}]


def test_decode_rejects_non_string():
    with pytest.raises(InputShapeError):
        decode({"a": 1})


def test_coerce_value_order():
    coerce = ToonDecoder.coerce_value
    assert coerce("true", True, True) is True
    assert coerce("false", True, True) is False
    assert coerce("true", True, False) == "true"
    assert coerce("TRUE", True, True) == "TRUE"
    assert coerce("30", False, True) == "30"
    assert coerce("", True, True) == ""
    assert coerce("abc", True, True) == "abc"


def test_parse_number_follows_javascript_rules():
    assert parse_number("42") == 42
    assert parse_number(" 42 ") == 42
    assert parse_number("-1.5") == -1.5
    assert parse_number(".5") == 0.5
    assert parse_number("1e3") == 1000.0
    assert parse_number("0x1A") == 26
    assert parse_number("0b101") == 5
    assert parse_number("Infinity") == math.inf
    assert parse_number("   ") == 0
    assert parse_number("1_000") is None
    assert parse_number("nan") is None
    assert parse_number("12px") is None
    # Only ASCII digits count
    assert parse_number("١٢") is None
    assert parse_number("１.５") is None


def test_nested_key_overwrites_scalar_by_default():
    assert decode("@schema|a|a.b\n1|2") == {"a": {"b": 2}}


def test_nested_key_conflict_when_strict():
    with pytest.raises(NestedKeyConflictError):
        decode("@schema|a|a.b\n1|2", DecodeConfig(strict_nesting=True))


def test_custom_delimiter_and_separator():
    enc = {"delimiter": ",", "nestedSeparator": "/"}
    text = encode_object({"a": {"b": "x,y"}, "c": 1}, enc)
    assert text == '@schema,a/b,c\n"x,y",1'
    assert decode(text, {"delimiter": ",", "nestedSeparator": "/"}) == {"a": {"b": "x,y"}, "c": 1}


def test_multi_character_delimiter():
    text = encode_object({"a": "1", "b": "2"}, {"delimiter": "::"})
    assert text == "@schema::a::b\n1::2"
    assert decode(text, {"delimiter": "::"}) == {"a": 1, "b": 2}


def test_empty_options_fall_back_to_defaults():
    assert EncodeConfig(delimiter="", nested_separator="").delimiter == "|"
    assert DecodeConfig(nestedSeparator="").nested_separator == "."


def test_stringify():
    assert ToonEncoder.stringify(True) == "true"
    assert ToonEncoder.stringify(None) == ""
    assert ToonEncoder.stringify(30.0) == "30"
    assert ToonEncoder.stringify(1.5) == "1.5"
    assert ToonEncoder.stringify([1, None, "x"]) == "1,,x"


def test_stringify_float_exponents():
    assert ToonEncoder.stringify(1e-7) == "1e-7"
    assert ToonEncoder.stringify(1.5e-7) == "1.5e-7"
    assert ToonEncoder.stringify(-2.5e-10) == "-2.5e-10"
    assert ToonEncoder.stringify(1e-05) == "0.00001"
    assert ToonEncoder.stringify(0.0000015) == "0.0000015"
    assert ToonEncoder.stringify(1e21) == "1e+21"


def test_estimate_tokens():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_estimate_token_savings():
    assert estimate_token_savings("a" * 40, "a" * 20) == "~50.0% token reduction"
    assert estimate_token_savings("", "abc") == "N/A"
    # Swappable counter
    assert estimate_token_savings("aaaa", "a", counter=len) == "~75.0% token reduction"


def test_encode_with_savings():
    result = encode_with_savings(PERSON)
    assert result.toon == PERSON_TOON
    assert result.original_json == PERSON
    assert result.token_savings_estimate == "~10.0% token reduction"


def test_json_string_helpers():
    assert json_to_toon('{"a": {"b": 1}}') == "@schema|a.b\n1"
    assert json_to_toon('[{"a": 1}, {"a": 2}]', "array") == "@schema|a\n1\n2"
    assert toon_to_json("@schema|a\n1") == '{"a": 1}'
    # Non-finite numbers are written as null, as JSON has no Infinity
    assert toon_to_json("@schema|v|w\n1e999|-Infinity") == '{"v": null, "w": null}'
    with pytest.raises(InvalidJsonError):
        json_to_toon("{not json")


def test_to_json_compatible():
    data = {"a": math.inf, "b": [1.5, -math.inf, {"c": math.nan}], "d": "Infinity"}
    assert to_json_compatible(data) == {"a": None, "b": [1.5, None, {"c": None}], "d": "Infinity"}


def test_validate_toon():
    assert validate_toon("@schema|a|b\n1|2\n3|4") is True
    assert validate_toon("no|header\nrows") is True
    assert validate_toon("") is True
    with pytest.raises(ToonError) as exc:
        validate_toon("@schema|a|b\n1|2\n3")
    assert "Row 3" in str(exc.value)
