import re
from typing import List, Optional

# Fenced blocks: ```json ... ```, ``` ... ```, ~~~json ... ~~~
_FENCE_RE = re.compile(
    r'```(?:json)?[ \t]*\n?(.*?)```|~~~(?:json)?[ \t]*\n?(.*?)~~~',
    re.S | re.I,
)
_XML_TAG_RE = re.compile(r'<json>(.*?)</json>', re.S | re.I)

_CLOSERS = {'{': '}', '[': ']'}


def extract_from_markdown(text: str) -> List[str]:
    """
    Contents of markdown code fences and `<json>` tags, in document order.

    Args:
        text: Raw model output.

    Returns:
        Trimmed, non-empty block bodies.
    """
    if not text:
        return []

    blocks = []
    for match in _FENCE_RE.finditer(text):
        content = (match.group(1) or match.group(2) or '').strip()
        if content:
            blocks.append(content)
    for match in _XML_TAG_RE.finditer(text):
        content = match.group(1).strip()
        if content:
            blocks.append(content)
    return blocks


def extract_balanced(text: str, start: int) -> Optional[str]:
    """
    Return the balanced `{...}` or `[...]` substring opening at `start`.

    Brackets inside double-quoted strings are ignored. Returns None when the
    structure never closes.
    """
    open_char = text[start]
    close_char = _CLOSERS[open_char]
    depth = 0
    in_string = False
    escape_next = False

    for i in range(start, len(text)):
        char = text[i]

        if escape_next:
            escape_next = False
            continue

        if char == '\\' and in_string:
            escape_next = True
            continue

        # Track string boundaries to avoid counting brackets in strings
        if char == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return None


def extract_by_braces(text: str) -> List[str]:
    """Every balanced object/array substring, one per opening bracket."""
    if not text:
        return []

    results = []
    for i, char in enumerate(text):
        if char in _CLOSERS:
            extracted = extract_balanced(text, i)
            if extracted:
                results.append(extracted)
    return results


def find_json_candidates(text: str) -> List[str]:
    """
    Substrings of `text` that look like JSON, most likely first.

    Markup blocks come first, then balanced-bracket scans. Duplicates are
    removed, keeping the first occurrence.
    """
    candidates = extract_from_markdown(text) + extract_by_braces(text)
    return list(dict.fromkeys(candidates))
