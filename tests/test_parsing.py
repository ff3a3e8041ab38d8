import pytest

from content.parsing import extract_first_object, must_parse_json, strip_code_fences, try_parse_json


def test_plain_json():
    assert try_parse_json('{"title": "x"}').data == {"title": "x"}


def test_fenced_json():
    raw = '```json\n{"title": "Fenced"}\n```'
    assert strip_code_fences(raw) == '{"title": "Fenced"}'
    assert try_parse_json(raw).data == {"title": "Fenced"}


def test_chatty_preamble_is_sliced():
    raw = 'Sure! Here is your event:\n{"title": "Chatty", "n": {"a": 1}}\nHope you like it.'
    res = try_parse_json(raw)
    assert res.data == {"title": "Chatty", "n": {"a": 1}}
    assert res.cleaned.startswith("{") and res.cleaned.endswith("}")


def test_failures_report_an_error():
    for raw in ("", None, "no json here", "{broken", "[1, 2, 3]"):
        res = try_parse_json(raw)
        assert res.data is None
        assert res.error


def test_extract_first_object():
    assert extract_first_object("a {b} c") == "{b}"
    assert extract_first_object("} nope {") == ""


def test_must_parse_json_raises_value_error():
    with pytest.raises(ValueError):
        must_parse_json("definitely not json")
