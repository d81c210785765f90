import re
from typing import Dict, Pattern

FORMAT_PATTERNS: Dict[str, Pattern] = {
    'date': re.compile(r'\d{4}-\d{2}-\d{2}', re.ASCII),
    'date-time': re.compile(
        r'\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})?',
        re.ASCII,
    ),
    'email': re.compile(r'[^\s@]+@[^\s@]+\.[^\s@]+'),
    'uri': re.compile(r'[a-zA-Z][a-zA-Z\d+\-.]*:.*', re.S),
    'uuid': re.compile(
        r'[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}',
        re.I,
    ),
}


def check_format(value: str, format_name: str) -> bool:
    """True when `value` matches the named format. Unknown formats always pass."""
    pattern = FORMAT_PATTERNS.get(format_name)
    if pattern is None:
        return True
    return pattern.fullmatch(value) is not None
