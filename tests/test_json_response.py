"""Test parsing of JSON answers."""
import pytest

from extraction.json_response import ResponseParseError, parse_json_response, strip_code_fences


def test_plain_json():
    assert parse_json_response('{"a": 1}') == {"a": 1}


def test_fenced_json_equals_plain():
    """Test that code fences do not change the parsed value."""
    plain = '{"chapters": [1, 2], "title": "X"}'

    assert parse_json_response(f"```json\n{plain}\n```") == parse_json_response(plain)
    assert parse_json_response(f"```\n{plain}\n```") == parse_json_response(plain)


def test_json_inside_prose():
    """Test that the object span is recovered from surrounding text."""
    response = 'Here is the plan:\n{"title": "X", "n": 2}\nLet me know if you need changes.'

    assert parse_json_response(response) == {"title": "X", "n": 2}


def test_no_json_raises():
    with pytest.raises(ResponseParseError):
        parse_json_response("I could not analyze this book.")


def test_broken_json_raises():
    """Test that an unparseable object span raises a parse error."""
    with pytest.raises(ResponseParseError):
        parse_json_response('{"title": "X", "chapters": [1, 2}')


def test_strip_code_fences():
    assert strip_code_fences("```json\n{}\n```") == "{}"
    assert strip_code_fences("  {}  ") == "{}"
