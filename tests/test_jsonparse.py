import pytest

from filmcore.errors import ResponseParseError
from filmcore.jsonparse import parse_ai_json


def test_strips_fences_and_prose():
    text = 'Sure! Here you go:\n```json\n{"a": {"b": 1}}\n```\nEnjoy.'
    assert parse_ai_json(text) == {"a": {"b": 1}}


@pytest.mark.parametrize("text", ["", "no braces", "{not json}", "} backwards {"])
def test_invalid_input_raises(text):
    with pytest.raises(ResponseParseError, match="Failed to parse AI response"):
        parse_ai_json(text)
