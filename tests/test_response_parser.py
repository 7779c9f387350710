"""Tests for JSON extraction from LLM replies."""
import pytest

from app.exceptions import MalformedModelOutputError
from app.services.response_parser import (
    BalancedBracketExtractor,
    BracketSpanExtractor,
    get_extractor,
    parse_llm_json,
)


def test_parses_fenced_object():
    text = 'Here you go:\n```json\n{"strengths": ["a"], "gaps": []}\n```\nHope it helps.'
    assert parse_llm_json(text) == {"strengths": ["a"], "gaps": []}


def test_parses_bare_array():
    assert parse_llm_json('[{"objective": "x"}]') == [{"objective": "x"}]


def test_array_before_object_starts_at_bracket():
    text = 'Result: [{"a": 1}, {"b": 2}]'
    assert parse_llm_json(text) == [{"a": 1}, {"b": 2}]


@pytest.mark.parametrize("text", [None, "", "no json at all", "} backwards {"])
def test_no_structure_raises(text):
    with pytest.raises(MalformedModelOutputError) as exc_info:
        parse_llm_json(text)
    assert exc_info.value.raw_text == (text or "")


def test_invalid_json_raises_with_raw_text():
    text = '{"analysis": "unterminated}'
    with pytest.raises(MalformedModelOutputError) as exc_info:
        parse_llm_json(text)
    assert exc_info.value.raw_text == text


def test_stray_trailing_bracket_breaks_span_heuristic():
    text = '{"analysis": "ok"} (see [1])'
    with pytest.raises(MalformedModelOutputError):
        parse_llm_json(text, BracketSpanExtractor())


def test_balanced_extractor_stops_at_first_block():
    text = '{"analysis": "ok"} (see [1])'
    assert parse_llm_json(text, BalancedBracketExtractor()) == {"analysis": "ok"}


def test_balanced_extractor_ignores_brackets_in_strings():
    text = 'x {"note": "use } and ] freely", "n": [1, 2]} y'
    assert BalancedBracketExtractor().extract_span(text) == '{"note": "use } and ] freely", "n": [1, 2]}'


def test_balanced_extractor_mismatch_returns_none():
    assert BalancedBracketExtractor().extract_span('{"a": [1, 2}') is None


def test_get_extractor_default_and_unknown():
    assert get_extractor().name == "bracket_span"
    assert get_extractor("balanced").name == "balanced"
    with pytest.raises(ValueError):
        get_extractor("regex")


@pytest.mark.parametrize(
    "text",
    [
        '```json\n{"score": NaN}\n```',
        '{"x": Infinity}',
        '[1, -Infinity]',
    ],
)
def test_non_json_constants_are_rejected(text):
    with pytest.raises(MalformedModelOutputError) as exc_info:
        parse_llm_json(text)
    assert exc_info.value.raw_text == text
