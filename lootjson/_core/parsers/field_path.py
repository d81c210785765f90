import json
import logging
import re
from enum import Enum
from typing import Any, Iterator, List, NamedTuple, Optional, Tuple

from lootjson._core.environment import settings
from lootjson._core.error import LootError, LootErrorCode
from lootjson._core.logging import get_logger
from lootjson._core.parsers.extract import find_json_candidates
from lootjson._core.parsers.repair.repairer import repair_json
from lootjson._core.utils import strict_loads

logger = get_logger(__name__)
LOG_LEVEL = logging._nameToLevel[settings.repair_log_level]

_WHITESPACE = ' \t\r\n'
_INT_RE = re.compile(r'-?\d+')
_MISSING = object()


class SegmentKind(str, Enum):
    KEY = 'key'
    INDEX = 'index'
    WILDCARD = 'wildcard'
    DESCEND = 'descend'


class PathSegment(NamedTuple):
    kind: SegmentKind
    value: Any = None


Span = Tuple[int, int]


###################################
# Path syntax
###################################
def parse_path(path: str) -> List[PathSegment]:
    """
    Parse a field path into segments.

    Supported forms::

        user.name          nested keys
        user["first.last"] quoted key (single or double quotes)
        items[0]           array index (negative counts from the end)
        items.*  items[*]  every member / element
        ..id  **.id        every `id` at any depth below the current node

    A leading `$` (root) is accepted and ignored.

    Raises:
        ValueError: On unbalanced brackets or quotes.
    """
    segments: List[PathSegment] = []
    i = 0
    length = len(path)
    if path.startswith('$'):
        i = 1

    def _name(start: int) -> Tuple[str, int]:
        end = start
        while end < length and path[end] not in '.[':
            end += 1
        return path[start:end].strip(), end

    while i < length:
        char = path[i]

        if char == '.':
            if path.startswith('..', i):
                name, i = _name(i + 2)
                if not name:
                    raise ValueError(f'Recursive descent needs a key name: {path!r}')
                segments.append(PathSegment(SegmentKind.DESCEND, name))
            else:
                i += 1
            continue

        if char == '[':
            close = _find_bracket_end(path, i)
            inner = path[i + 1 : close].strip()
            i = close + 1
            if inner == '*':
                segments.append(PathSegment(SegmentKind.WILDCARD))
            elif inner[:1] in ('"', "'"):
                segments.append(PathSegment(SegmentKind.KEY, inner[1:-1]))
            elif _is_int(inner):
                segments.append(PathSegment(SegmentKind.INDEX, int(inner)))
            elif inner:
                segments.append(PathSegment(SegmentKind.KEY, inner))
            continue

        name, i = _name(i)
        if name == '**':
            name, i = _name(i + 1) if path.startswith('.', i) else ('', i)
            if not name:
                raise ValueError(f'Recursive descent needs a key name: {path!r}')
            segments.append(PathSegment(SegmentKind.DESCEND, name))
        elif name == '*':
            segments.append(PathSegment(SegmentKind.WILDCARD))
        elif name:
            segments.append(PathSegment(SegmentKind.KEY, name))

    return segments


def _find_bracket_end(path: str, start: int) -> int:
    quote = ''
    for i in range(start + 1, len(path)):
        char = path[i]
        if quote:
            if char == quote:
                quote = ''
        elif char in ('"', "'"):
            quote = char
        elif char == ']':
            return i
    raise ValueError(f'Unclosed bracket in path: {path!r}')


def _is_int(text: str) -> bool:
    return _INT_RE.fullmatch(text) is not None


###################################
# Raw-text value scanning
###################################
def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _WHITESPACE:
        pos += 1
    return pos


def _string_end(text: str, pos: int) -> int:
    i = pos + 1
    while i < len(text):
        char = text[i]
        if char == '\\':
            i += 2
            continue
        if char == '"':
            return i + 1
        i += 1
    return len(text)


def _value_end(text: str, pos: int) -> int:
    """End offset (exclusive) of the value starting at `pos`."""
    if pos >= len(text):
        return pos

    char = text[pos]
    if char == '"':
        return _string_end(text, pos)

    if char in '{[':
        depth = 0
        i = pos
        while i < len(text):
            char = text[i]
            if char == '"':
                i = _string_end(text, i)
                continue
            if char in '{[':
                depth += 1
            elif char in '}]':
                depth -= 1
                if depth == 0:
                    return i + 1
            i += 1
        return len(text)

    i = pos
    while i < len(text) and text[i] not in ',}]' and text[i] not in _WHITESPACE:
        i += 1
    return i


def _members(text: str, span: Span) -> Iterator[Tuple[str, Span]]:
    """(key, value span) pairs of the object occupying `span`."""
    start, end = span
    if start >= end or text[start] != '{':
        return

    pos = start + 1
    while pos < end:
        pos = _skip_ws(text, pos)
        if pos >= end or text[pos] == '}':
            return
        if text[pos] == ',':
            pos += 1
            continue
        if text[pos] != '"':
            return

        key_end = _string_end(text, pos)
        try:
            key = json.loads(text[pos:key_end])
        except json.JSONDecodeError:
            return

        pos = _skip_ws(text, key_end)
        if pos >= end or text[pos] != ':':
            return
        value_start = _skip_ws(text, pos + 1)
        value_end = _value_end(text, value_start)
        yield key, (value_start, value_end)
        pos = value_end


def _elements(text: str, span: Span) -> Iterator[Span]:
    start, end = span
    if start >= end or text[start] != '[':
        return

    pos = start + 1
    while pos < end:
        pos = _skip_ws(text, pos)
        if pos >= end or text[pos] == ']':
            return
        if text[pos] == ',':
            pos += 1
            continue
        value_end = _value_end(text, pos)
        if value_end == pos:
            return
        yield (pos, value_end)
        pos = value_end


def _children(text: str, span: Span) -> Iterator[Tuple[Optional[str], Span]]:
    if span[0] >= span[1]:
        return
    if text[span[0]] == '{':
        yield from _members(text, span)
    elif text[span[0]] == '[':
        for child in _elements(text, span):
            yield None, child


def _descend(text: str, span: Span, name: str) -> Iterator[Span]:
    for key, child in _children(text, span):
        if key == name:
            yield child
        yield from _descend(text, child, name)


def _step(text: str, span: Span, segment: PathSegment) -> List[Span]:
    if span[0] >= span[1]:
        return []

    if segment.kind is SegmentKind.KEY:
        if text[span[0]] == '[' and _is_int(segment.value):
            return _step(text, span, PathSegment(SegmentKind.INDEX, int(segment.value)))
        for key, child in _members(text, span):
            if key == segment.value:
                return [child]
        return []

    if segment.kind is SegmentKind.INDEX:
        elements = list(_elements(text, span))
        try:
            return [elements[segment.value]]
        except IndexError:
            return []

    if segment.kind is SegmentKind.WILDCARD:
        return [child for _, child in _children(text, span)]

    return list(_descend(text, span, segment.value))


def select_spans(text: str, segments: List[PathSegment]) -> List[Span]:
    """Spans of every value the path selects inside `text`."""
    root = _skip_ws(text, 0)
    spans = [(root, _value_end(text, root))]
    for segment in segments:
        spans = [child for span in spans for child in _step(text, span, segment)]
        if not spans:
            break
    return spans


def _parse_value(raw: str, repair: bool) -> Any:
    try:
        return strict_loads(raw)
    except ValueError:
        if not repair:
            return _MISSING
    try:
        return strict_loads(repair_json(raw))
    except ValueError:
        return _MISSING


def extract_field_values(
    text: str, segments: List[PathSegment], repair: bool = True
) -> List[Any]:
    values = []
    for start, end in select_spans(text, segments):
        value = _parse_value(text[start:end], repair)
        if value is not _MISSING:
            values.append(value)
    return values


def loot_field(
    text: str,
    path: str,
    *,
    repair: bool = True,
    silent: bool = True,
    all_results: bool = False,
) -> Any:
    """
    Pull a single field out of JSON embedded in `text` without parsing the
    rest of the document.

    Args:
        text: Raw text containing one or more JSON candidates.
        path: Field path, e.g. ``'user.name'``, ``'items[0]'``, ``'..id'``.
        repair: Repair each candidate before scanning it.
        silent: Return None instead of raising when nothing matches.
        all_results: Collect matches from every candidate instead of the first.

    Returns:
        The field value. Paths with `*` or `..` return a list of matches;
        `all_results` returns a list across candidates.

    Raises:
        LootError: EMPTY_INPUT or FIELD_NOT_FOUND when `silent` is False.
    """
    if not text or not path:
        if silent:
            return None
        raise LootError('Text and path are required', LootErrorCode.EMPTY_INPUT)

    segments = parse_path(path)
    multi = any(
        s.kind in (SegmentKind.WILDCARD, SegmentKind.DESCEND) for s in segments
    )
    results: List[Any] = []

    for candidate in find_json_candidates(text):
        json_text = repair_json(candidate) if repair else candidate
        values = extract_field_values(json_text, segments, repair=repair)
        if not values:
            continue

        found = values if multi else values[0]
        logger.log(LOG_LEVEL, f"Field '{path}' found in candidate of {len(candidate)} chars")
        if not all_results:
            return found
        if multi:
            results.extend(values)
        else:
            results.append(found)

    if all_results and results:
        return results

    if silent:
        return None
    raise LootError(f"Field '{path}' not found", LootErrorCode.FIELD_NOT_FOUND)
