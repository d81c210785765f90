import pytest
from lootjson._core.parsers.extract import (
    extract_balanced,
    extract_by_braces,
    extract_from_markdown,
    find_json_candidates,
)


@pytest.mark.parametrize(
    'text',
    [
        'Here you go:\n```json\n{"key": "value"}\n```\nThanks',
        '```\n{"key": "value"}\n```',
        '```JSON {"key": "value"}```',
        '~~~json\n{"key": "value"}\n~~~',
        '~~~\n{"key": "value"}\n~~~',
        'Answer: <json>\n{"key": "value"}\n</json>',
    ],
)
def test_extract_from_markdown_variants(text):
    assert extract_from_markdown(text) == ['{"key": "value"}']


def test_extract_from_markdown_skips_empty_blocks():
    assert extract_from_markdown('```json\n   \n```') == []
    assert extract_from_markdown('') == []


def test_extract_from_markdown_keeps_document_order():
    text = '```json\n{"a": 1}\n```\nthen\n```\n[2]\n```'
    assert extract_from_markdown(text) == ['{"a": 1}', '[2]']


def test_extract_balanced_ignores_brackets_in_strings():
    text = 'x {"a": "} not the end", "b": [1, 2]} y'
    assert extract_balanced(text, 2) == '{"a": "} not the end", "b": [1, 2]}'


def test_extract_balanced_handles_escaped_quotes():
    text = '{"a": "quote \\" and }"}'
    assert extract_balanced(text, 0) == text


def test_extract_balanced_unclosed_returns_none():
    assert extract_balanced('{"a": [1, 2', 0) is None


def test_extract_by_braces_returns_every_opening_bracket():
    text = 'pre {"a": [1, {"b": 2}]} mid [3] post'
    assert extract_by_braces(text) == [
        '{"a": [1, {"b": 2}]}',
        '[1, {"b": 2}]',
        '{"b": 2}',
        '[3]',
    ]


def test_extract_by_braces_empty_input():
    assert extract_by_braces('') == []
    assert extract_by_braces('no brackets here') == []


def test_find_json_candidates_markdown_first_and_deduplicated():
    text = 'Result:\n```json\n{"a": 1}\n```\nAlso {"b": 2}'
    assert find_json_candidates(text) == ['{"a": 1}', '{"b": 2}']
