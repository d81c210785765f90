import logging
import re
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from lootjson._core.environment import settings
from lootjson._core.logging import get_logger
from lootjson._core.parsers.repair.types import (
    RepairLog,
    RepairResult,
    RepairRules,
    RepairType,
)
from lootjson._core.utils import line_and_column

logger = get_logger(__name__)
LOG_LEVEL = logging._nameToLevel[settings.repair_log_level]

RulesLike = Union[RepairRules, Mapping[str, Any], None]


class LexState(Enum):
    NORMAL = auto()
    IN_DOUBLE_STRING = auto()
    IN_DOUBLE_STRING_ESCAPE = auto()
    IN_SINGLE_STRING = auto()
    IN_SINGLE_STRING_ESCAPE = auto()
    IN_SINGLE_LINE_COMMENT = auto()
    IN_MULTI_LINE_COMMENT = auto()
    IN_MULTI_LINE_COMMENT_STAR = auto()


class RepairState:
    """Mutable automaton state owned by a single repair pass."""

    def __init__(self, rules: RepairRules, track: bool):
        self.rules = rules
        self.track = track
        self.state = LexState.NORMAL
        self.output: List[str] = []
        self.repairs: List[RepairLog] = []
        self.line = 1
        self.column = 1
        self.position = 0
        self.newline_run = False
        self.skip = 0

    def emit(self, text: str) -> None:
        self.output.append(text)

    def record(self, kind: RepairType, description: str) -> None:
        if self.track:
            self.repairs.append(
                RepairLog(
                    kind=kind,
                    position=self.position,
                    line=self.line,
                    column=self.column,
                    description=description,
                )
            )


###################################
# Lexical transitions
###################################
def _normal(rs: RepairState, char: str, lookahead: str) -> None:
    rules = rs.rules

    if char == '/' and lookahead == '/' and rules.single_line_comments:
        rs.record(RepairType.SINGLE_LINE_COMMENT, 'Removed single-line comment')
        rs.state = LexState.IN_SINGLE_LINE_COMMENT
        return

    if char == '/' and lookahead == '*' and rules.multi_line_comments:
        rs.record(RepairType.MULTI_LINE_COMMENT, 'Removed multi-line comment')
        rs.state = LexState.IN_MULTI_LINE_COMMENT
        # the opening '*' must not count towards a closing '*/'
        rs.skip = 1
        return

    if char == '"':
        rs.emit(char)
        rs.newline_run = False
        rs.state = LexState.IN_DOUBLE_STRING
        return

    if char == "'" and rules.single_quotes:
        rs.record(
            RepairType.SINGLE_QUOTE, 'Converted single-quoted string to double-quoted'
        )
        rs.emit('"')
        rs.newline_run = False
        rs.state = LexState.IN_SINGLE_STRING
        return

    rs.emit(char)


def _escape_raw_newline(rs: RepairState, char: str) -> bool:
    if char not in '\r\n' or not rs.rules.unescaped_newlines:
        return False
    if not rs.newline_run:
        rs.record(RepairType.UNESCAPED_NEWLINE, 'Escaped unescaped newline in string')
        rs.newline_run = True
    rs.emit('\\r' if char == '\r' else '\\n')
    return True


def _in_double_string(rs: RepairState, char: str, lookahead: str) -> None:
    if char == '\\':
        rs.newline_run = False
        rs.state = LexState.IN_DOUBLE_STRING_ESCAPE
        return
    if char == '"':
        rs.emit(char)
        rs.state = LexState.NORMAL
        return
    if _escape_raw_newline(rs, char):
        return
    rs.newline_run = False
    rs.emit(char)


def _in_single_string(rs: RepairState, char: str, lookahead: str) -> None:
    if char == '\\':
        rs.newline_run = False
        rs.state = LexState.IN_SINGLE_STRING_ESCAPE
        return
    if char == "'":
        rs.emit('"')
        rs.state = LexState.NORMAL
        return
    if _escape_raw_newline(rs, char):
        return
    rs.newline_run = False
    # a bare double quote would terminate the converted literal
    rs.emit('\\"' if char == '"' else char)


def _escaped(rs: RepairState, char: str, back_to: LexState) -> None:
    # \' is not a valid JSON escape; the quote needs no escaping once converted
    rs.emit("'" if char == "'" else '\\' + char)
    rs.state = back_to


def _in_double_string_escape(rs: RepairState, char: str, lookahead: str) -> None:
    _escaped(rs, char, LexState.IN_DOUBLE_STRING)


def _in_single_string_escape(rs: RepairState, char: str, lookahead: str) -> None:
    _escaped(rs, char, LexState.IN_SINGLE_STRING)


def _in_single_line_comment(rs: RepairState, char: str, lookahead: str) -> None:
    if char == '\n':
        rs.state = LexState.NORMAL


def _in_multi_line_comment(rs: RepairState, char: str, lookahead: str) -> None:
    if char == '*':
        rs.state = LexState.IN_MULTI_LINE_COMMENT_STAR


def _in_multi_line_comment_star(rs: RepairState, char: str, lookahead: str) -> None:
    if char == '/':
        rs.state = LexState.NORMAL
    elif char != '*':
        rs.state = LexState.IN_MULTI_LINE_COMMENT


_TRANSITIONS: Dict[LexState, Callable[[RepairState, str, str], None]] = {
    LexState.NORMAL: _normal,
    LexState.IN_DOUBLE_STRING: _in_double_string,
    LexState.IN_DOUBLE_STRING_ESCAPE: _in_double_string_escape,
    LexState.IN_SINGLE_STRING: _in_single_string,
    LexState.IN_SINGLE_STRING_ESCAPE: _in_single_string_escape,
    LexState.IN_SINGLE_LINE_COMMENT: _in_single_line_comment,
    LexState.IN_MULTI_LINE_COMMENT: _in_multi_line_comment,
    LexState.IN_MULTI_LINE_COMMENT_STAR: _in_multi_line_comment_star,
}


###################################
# Structural post-pass
###################################
# Group 1 always captures a double-quoted literal (possibly unterminated) so the
# structural patterns only ever fire outside strings.
_STRING = r'("(?:[^"\\]|\\.)*"?)'
_TRAILING_COMMA_RE = re.compile(_STRING + r'|,(?=(?:\s*,)*\s*[}\]])', re.S)
_UNQUOTED_KEY_RE = re.compile(
    _STRING + r'|([{,]\s*)([A-Za-z_$][A-Za-z0-9_$]*)(\s*:)', re.S
)
_INVALID_VALUE_RE = re.compile(
    _STRING + r'|(:\s*)(-?Infinity|undefined|NaN)\b', re.S
)


def _sub_outside_strings(
    pattern: re.Pattern, text: str, replace: Callable[[re.Match], str]
) -> str:
    def _replace(match: re.Match) -> str:
        if match.group(1) is not None:
            return match.group(1)
        return replace(match)

    return pattern.sub(_replace, text)


def _structural_log(
    kind: RepairType, text: str, position: int, description: str
) -> RepairLog:
    line, column = line_and_column(text, position)
    return RepairLog(
        kind=kind,
        position=position,
        line=line,
        column=column,
        description=description,
    )


def _fix_trailing_commas(text: str, rs: RepairState) -> str:
    def _drop(match: re.Match) -> str:
        if rs.track:
            rs.repairs.append(
                _structural_log(
                    RepairType.TRAILING_COMMA,
                    text,
                    match.start(),
                    'Removed trailing comma',
                )
            )
        return ''

    return _sub_outside_strings(_TRAILING_COMMA_RE, text, _drop)


def _fix_unquoted_keys(text: str, rs: RepairState) -> str:
    def _quote(match: re.Match) -> str:
        prefix, key, colon = match.group(2), match.group(3), match.group(4)
        if rs.track:
            rs.repairs.append(
                _structural_log(
                    RepairType.UNQUOTED_KEY,
                    text,
                    match.start(3),
                    f'Quoted unquoted key: {key}',
                )
            )
        return f'{prefix}"{key}"{colon}'

    return _sub_outside_strings(_UNQUOTED_KEY_RE, text, _quote)


def _fix_invalid_values(text: str, rs: RepairState) -> str:
    found: Dict[str, List[int]] = {}

    def _nullify(match: re.Match) -> str:
        sentinel = match.group(3).lstrip('-')
        found.setdefault(sentinel, []).append(match.start(3))
        return f'{match.group(2)}null'

    result = _sub_outside_strings(_INVALID_VALUE_RE, text, _nullify)

    if rs.track:
        for sentinel, positions in found.items():
            rs.repairs.append(
                _structural_log(
                    RepairType.INVALID_VALUE,
                    text,
                    positions[0],
                    f'Replaced {len(positions)} occurrence(s) of {sentinel} with null',
                )
            )
    return result


class JsonRepairer:
    """
    Single-pass repair of near-JSON text.

    Lexical fixes (quotes, comments, raw newlines in strings) are applied by an
    explicit state machine; structural fixes (trailing commas, bare keys,
    `undefined`/`NaN`/`Infinity`) run afterwards over the lexically clean text,
    outside of string literals only.
    """

    def __init__(self, rules: RulesLike = None, track_repairs: bool = False):
        self.rules = RepairRules.merge(rules)
        self.track_repairs = track_repairs
        self.stats = {
            'calls': 0,
            'changed': 0,
            'repairs_logged': 0,
        }

    def reset_stats(self) -> None:
        """Reset repair statistics."""
        for key in self.stats:
            self.stats[key] = 0

    def repair(self, text: str) -> Union[str, RepairResult]:
        """
        Repair `text` and return the fixed JSON text.

        Args:
            text: Any string purporting to be JSON.

        Returns:
            The repaired text, or a RepairResult when the repairer was built
            with `track_repairs=True`. The output is not guaranteed to parse.
        """
        result = self.repair_with_log(text)
        return result if self.track_repairs else result.text

    def repair_with_log(self, text: str) -> RepairResult:
        """Repair `text` and always return the RepairResult."""
        self.stats['calls'] += 1
        if not text:
            return RepairResult(text='', repairs=[])

        track = self.track_repairs or logger.isEnabledFor(LOG_LEVEL)
        rs = RepairState(self.rules, track)
        length = len(text)

        for index, char in enumerate(text):
            rs.position = index
            if rs.skip:
                rs.skip -= 1
            else:
                lookahead = text[index + 1] if index + 1 < length else ''
                _TRANSITIONS[rs.state](rs, char, lookahead)

            if char == '\n':
                rs.line += 1
                rs.column = 1
            else:
                rs.column += 1

        repaired = ''.join(rs.output)
        if self.rules.trailing_comma:
            repaired = _fix_trailing_commas(repaired, rs)
        if self.rules.unquoted_keys:
            repaired = _fix_unquoted_keys(repaired, rs)
        if self.rules.invalid_values:
            repaired = _fix_invalid_values(repaired, rs)

        if repaired != text:
            self.stats['changed'] += 1
        self.stats['repairs_logged'] += len(rs.repairs)

        if rs.repairs:
            logger.log(
                LOG_LEVEL,
                f'Applied {len(rs.repairs)} repair(s): '
                + ', '.join(sorted({str(r.kind) for r in rs.repairs})),
            )

        return RepairResult(text=repaired, repairs=rs.repairs if self.track_repairs else [])


def repair_json(
    text: str,
    track_repairs: bool = False,
    rules: RulesLike = None,
) -> Union[str, RepairResult]:
    """
    Repair common LLM JSON mistakes in a single pass.

    Args:
        text: The malformed JSON-like string.
        track_repairs: Return a RepairResult with the repair log instead of text.
        rules: Per-rule overrides merged onto the defaults, e.g.
            ``{'single_line_comments': False}``.

    Returns:
        Repaired JSON text, or RepairResult when `track_repairs` is True.

    Example:
        >>> repair_json("{'key': 'value',}")
        '{"key": "value"}'
    """
    return JsonRepairer(rules=rules, track_repairs=track_repairs).repair(text)
