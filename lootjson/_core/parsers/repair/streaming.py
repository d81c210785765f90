from typing import List

from lootjson._core.logging import get_logger
from lootjson._core.parsers.repair.repairer import (
    LOG_LEVEL,
    JsonRepairer,
    LexState,
    RulesLike,
)
from lootjson._core.parsers.repair.types import RepairLog

logger = get_logger(__name__)

# Characters withheld behind the last safe split point.
LOOKBACK_MARGIN = 10


class StreamingRepair:
    """
    Repair JSON text that arrives in chunks.

    Each `add_chunk` call returns the repaired form of the longest prefix that
    can be repaired without knowing what follows; the remainder is buffered.

    Example:
        >>> stream = StreamingRepair()
        >>> out = ''.join(stream.add_chunk(c) for c in chunks) + stream.flush()
    """

    def __init__(self, track_repairs: bool = False, rules: RulesLike = None):
        self.track_repairs = track_repairs
        self._repairer = JsonRepairer(rules=rules, track_repairs=True)
        self._buffer = ''
        self._repairs: List[RepairLog] = []
        self._consumed = 0
        self._consumed_lines = 0
        self._consumed_column = 0

    @classmethod
    def from_config(cls, config) -> 'StreamingRepair':
        """Build from a `Config` profile (`repair.track_repairs`, `repair.rules`)."""
        return cls(track_repairs=config.track_repairs(), rules=config.repair_rules())

    @property
    def rules(self):
        return self._repairer.rules

    def add_chunk(self, chunk: str) -> str:
        """
        Buffer `chunk` and emit whatever prefix is now safe to repair.

        Args:
            chunk: Next piece of the stream.

        Returns:
            Repaired text for the released prefix (may be empty).
        """
        self._buffer += chunk
        cut = self._release_point()
        if cut <= 0:
            return ''

        section, self._buffer = self._buffer[:cut], self._buffer[cut:]
        return self._repair_section(section)

    def flush(self) -> str:
        """Repair and return everything still buffered."""
        section, self._buffer = self._buffer, ''
        text = self._repair_section(section) if section else ''
        if self._repairs:
            logger.log_table(
                [r.to_dict() for r in self._repairs],
                title='Stream repairs',
                columns=['kind', 'line', 'column', 'description'],
                level=LOG_LEVEL,
            )
        return text

    def get_repairs(self) -> List[RepairLog]:
        """Repairs applied so far, with stream-global coordinates."""
        return list(self._repairs)

    def reset(self) -> None:
        self._buffer = ''
        self._repairs = []
        self._consumed = 0
        self._consumed_lines = 0
        self._consumed_column = 0

    def _release_point(self) -> int:
        points = self._split_points(self._buffer)
        if not points:
            return 0

        limit = points[-1] - LOOKBACK_MARGIN
        if limit <= 0:
            return 0

        cut = 0
        for point in points:
            if point > limit:
                break
            cut = point
        return cut

    def _split_points(self, text: str) -> List[int]:
        """
        Offsets, in normal lexical state, directly after a closing string
        quote, `}` or `]`.

        Mirrors the repairer's lexer (same rules) but only tracks state.
        """
        rules = self._repairer.rules
        state = LexState.NORMAL
        points = []
        quote = ''
        index = 0
        length = len(text)

        while index < length:
            char = text[index]
            lookahead = text[index + 1] if index + 1 < length else ''

            if state is LexState.NORMAL:
                if char == '/' and lookahead == '/' and rules.single_line_comments:
                    state = LexState.IN_SINGLE_LINE_COMMENT
                    index += 2
                    continue
                if char == '/' and lookahead == '*' and rules.multi_line_comments:
                    state = LexState.IN_MULTI_LINE_COMMENT
                    index += 2
                    continue
                if char == '"':
                    state, quote = LexState.IN_DOUBLE_STRING, char
                elif char == "'" and rules.single_quotes:
                    state, quote = LexState.IN_SINGLE_STRING, char
                elif char in '}]':
                    points.append(index + 1)

            elif state in (LexState.IN_DOUBLE_STRING, LexState.IN_SINGLE_STRING):
                if char == '\\':
                    index += 2
                    continue
                if char == quote:
                    state = LexState.NORMAL
                    points.append(index + 1)

            elif state is LexState.IN_SINGLE_LINE_COMMENT:
                if char == '\n':
                    state = LexState.NORMAL

            elif state is LexState.IN_MULTI_LINE_COMMENT:
                if char == '*' and lookahead == '/':
                    state = LexState.NORMAL
                    index += 2
                    continue

            index += 1

        return points

    def _repair_section(self, section: str) -> str:
        result = self._repairer.repair_with_log(section)

        if self.track_repairs:
            self._repairs.extend(
                log.shifted(
                    position=self._consumed,
                    line=self._consumed_lines,
                    column=self._consumed_column,
                )
                for log in result.repairs
            )

        self._consumed += len(section)
        newlines = section.count('\n')
        if newlines:
            self._consumed_lines += newlines
            self._consumed_column = len(section) - section.rfind('\n') - 1
        else:
            self._consumed_column += len(section)

        logger.log(
            LOG_LEVEL,
            f'Released {len(section)} chars, {len(self._buffer)} buffered',
        )
        return result.text
