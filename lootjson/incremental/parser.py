import json
import logging
from typing import Any, AsyncIterable, Callable, Dict, Iterable, List, Optional

from lootjson._core.environment import settings
from lootjson._core.error import LootError, LootErrorCode
from lootjson._core.logging import get_logger
from lootjson._core.parsers.repair.repairer import JsonRepairer
from lootjson._core.utils import strict_loads
from lootjson.incremental.field_tracker import FieldTracker
from lootjson.incremental.types import (
    BufferOffsets,
    IncrementalLootOptions,
    ParserState,
    ParserStats,
    ProgressInfo,
    RecoveryInfo,
    RecoveryStrategy,
)

logger = get_logger(__name__)
LOG_LEVEL = logging._nameToLevel[settings.repair_log_level]

MAX_RECOVERY_ATTEMPTS = 3

_UNPARSED = object()


class IncrementalResult:
    """
    Live view over an IncrementalLoot, returned by every `add_chunk` call.

    The view reads the parser's current state, so a result kept from an
    earlier chunk reflects everything parsed since.
    """

    def __init__(self, parser: 'IncrementalLoot'):
        self._parser = parser

    def is_complete(self) -> bool:
        return self._parser.state.json_complete

    def is_field_complete(self, field: str) -> bool:
        return self._parser.tracker.is_complete(field)

    def get_field(self, field: str, default: Any = None) -> Any:
        return self._parser.tracker.get_field(field, default)

    def get_partial_result(self) -> Dict[str, Any]:
        """Every field completed so far, in completion order."""
        return self._parser.tracker.get_all_completed()

    def get_completed_fields(self) -> List[str]:
        return self._parser.tracker.get_completed_field_names()

    def get_buffer(self) -> str:
        """Current (possibly compacted) buffer, for diagnostics."""
        return self._parser.buffer

    def __repr__(self) -> str:
        return (
            f'IncrementalResult(complete={self.is_complete()}, '
            f'fields={self.get_completed_fields()})'
        )


class IncrementalLoot:
    """
    Incremental JSON parser for streamed LLM responses.

    Fields of the top-level object are reported as soon as their values are
    syntactically complete, so work can start before the response ends
    (e.g. speaking `dialogue` while `metadata` is still streaming).

    Example:
        >>> parser = IncrementalLoot(
        ...     fields=['dialogue', 'emotion'],
        ...     on_field_complete=lambda name, value: print(name, value),
        ... )
        >>> for chunk in stream:
        ...     if parser.add_chunk(chunk).is_complete():
        ...         break
        >>> parser.get_result()
    """

    def __init__(self, options: Optional[IncrementalLootOptions] = None, **overrides: Any):
        """
        Args:
            options: A prepared options model.
            **overrides: Option fields (`fields`, `repair`, `max_buffer_size`,
                `recover`, `rules`, `on_*` callbacks) applied on top of `options`.
        """
        if options is None:
            options = IncrementalLootOptions(**overrides)
        elif overrides:
            options = IncrementalLootOptions.model_validate({**dict(options), **overrides})

        self.options = options
        self.tracker = FieldTracker(options.fields)
        self._repairer = JsonRepairer(rules=options.rules)
        self.reset()

    @classmethod
    def from_config(cls, config, **callbacks: Callable[..., Any]) -> 'IncrementalLoot':
        """Build from the `incremental` section of a `Config` profile."""
        return cls(config.incremental_options(**callbacks))

    ###################################
    # Public API
    ###################################
    def add_chunk(self, chunk: str) -> IncrementalResult:
        """
        Append a chunk and scan only the bytes not seen before.

        Args:
            chunk: Next piece of streamed text (any split point is fine).

        Returns:
            IncrementalResult view over the parser.
        """
        self.buffer += chunk
        self.bytes_processed += len(chunk)

        self._maybe_compact()
        self._process_buffer()
        self._report_progress()

        return IncrementalResult(self)

    def get_result(self) -> Any:
        """Parsed document, or None until the document completes successfully."""
        return self._result

    def get_stats(self) -> ParserStats:
        return ParserStats(
            bytes_processed=self.bytes_processed,
            buffer_size=len(self.buffer),
            fields_completed=len(self.tracker),
            is_complete=self.state.json_complete,
        )

    def reset(self) -> None:
        """Clear buffer, scan state, completed fields and result for reuse."""
        self.buffer = ''
        self.bytes_processed = 0
        self.state = ParserState()
        self.offsets = BufferOffsets()
        self.tracker.reset()
        self._result: Any = None
        self._finalized = False
        self._recovery_attempts = 0

    def feed(self, chunks: Iterable[str], stop_on_complete: bool = True) -> Any:
        """
        Drive `add_chunk` over a chunk iterable.

        Args:
            chunks: Any iterable of text chunks.
            stop_on_complete: Stop consuming once the document completes.

        Returns:
            The value of `get_result()` afterwards.
        """
        with logger.log_operation('IncrementalLoot.feed', level=LOG_LEVEL):
            for chunk in chunks:
                if self.add_chunk(chunk).is_complete() and stop_on_complete:
                    break
        return self.get_result()

    async def feed_async(
        self, chunks: AsyncIterable[str], stop_on_complete: bool = True
    ) -> Any:
        """Async counterpart of `feed`; only the chunk source is awaited."""
        async with logger.async_log_operation('IncrementalLoot.feed_async', level=LOG_LEVEL):
            async for chunk in chunks:
                if self.add_chunk(chunk).is_complete() and stop_on_complete:
                    break
        return self.get_result()

    ###################################
    # Buffer Management
    ###################################
    def _maybe_compact(self) -> None:
        if len(self.buffer) <= self.options.max_buffer_size:
            return

        safe_point = self._safe_compaction_point()
        if safe_point <= 0:
            return

        self.buffer = self.buffer[safe_point:]
        self.offsets.rebase(safe_point)
        logger.log(LOG_LEVEL, f'Compacted {safe_point} characters from the buffer')

    def _safe_compaction_point(self) -> int:
        offsets = self.offsets
        if offsets.document_start is None:
            return 0

        pending = [
            offset
            for offset in (offsets.key_start, offsets.value_start)
            if offset is not None
        ]
        return min(pending + [len(self.buffer), offsets.document_start])

    def _report_progress(self) -> None:
        if self.options.on_progress is None:
            return

        completed = self.tracker.get_completed_field_names()
        estimated = None
        if self.options.fields:
            estimated = len(completed) / len(self.options.fields)

        self.options.on_progress(
            ProgressInfo(
                bytes_processed=self.bytes_processed,
                bytes_buffered=len(self.buffer),
                fields_completed=completed,
                estimated_progress=estimated,
            )
        )

    ###################################
    # Structural Scan
    ###################################
    def _process_buffer(self) -> None:
        state = self.state
        position = self.offsets.processed

        while position < len(self.buffer) and not state.json_complete:
            char = self.buffer[position]

            if state.escape_next:
                state.escape_next = False
            elif char == '\\' and state.in_string:
                state.escape_next = True
            elif char == '"':
                self._on_quote(position)
            elif not state.in_string:
                handler = _STRUCTURAL_HANDLERS.get(char)
                if handler is not None:
                    handler(self, position)

            position += 1

        self.offsets.processed = len(self.buffer)

    def _on_quote(self, position: int) -> None:
        state, offsets = self.state, self.offsets

        if not state.in_string:
            state.in_string = True
            if state.depth == 1 and offsets.value_start is None and not state.current_key:
                offsets.key_start = position
            return

        state.in_string = False
        if offsets.key_start is not None and offsets.value_start is None:
            key = self.buffer[offsets.key_start + 1 : position]
            state.current_key = key
            offsets.key_start = None
            if (
                self.options.on_field_start
                and self.tracker.is_tracking(key)
                and not self.tracker.is_complete(key)
            ):
                self.options.on_field_start(key)
        elif offsets.value_start is not None and state.value_depth == 0:
            self._try_complete_field(position + 1)

    def _on_open_brace(self, position: int) -> None:
        state = self.state
        if not state.json_started:
            state.json_started = True
            self.offsets.document_start = position

        state.depth += 1
        if state.depth >= 2 and self.offsets.value_start is not None:
            state.value_depth += 1

    def _on_close_brace(self, position: int) -> None:
        state = self.state
        if not state.json_started:
            return

        if state.value_depth > 0:
            state.value_depth -= 1
            if state.value_depth == 0 and self.offsets.value_start is not None:
                self._try_complete_field(position + 1)
        elif state.depth == 1 and self.offsets.value_start is not None and state.current_key:
            # bare primitive closed by the end of the object
            self._try_complete_field(position)

        state.depth = max(0, state.depth - 1)
        if state.depth == 0:
            state.json_complete = True
            self._finalize(position)

    def _on_open_bracket(self, position: int) -> None:
        state = self.state
        if not state.json_started:
            return
        if self.offsets.value_start is not None:
            state.value_depth += 1
        state.depth += 1

    def _on_close_bracket(self, position: int) -> None:
        state = self.state
        if not state.json_started:
            return
        if state.value_depth > 0:
            state.value_depth -= 1
            if state.value_depth == 0 and self.offsets.value_start is not None:
                self._try_complete_field(position + 1)
        state.depth = max(0, state.depth - 1)

    def _on_colon(self, position: int) -> None:
        state, offsets = self.state, self.offsets
        if state.depth == 1 and state.current_key and offsets.value_start is None:
            value_start = position + 1
            while value_start < len(self.buffer) and self.buffer[value_start].isspace():
                value_start += 1
            offsets.value_start = value_start

    def _on_comma(self, position: int) -> None:
        state = self.state
        if state.depth != 1:
            return
        if self.offsets.value_start is not None and state.value_depth == 0:
            self._try_complete_field(position)
        self._reset_field_state()

    ###################################
    # Field Completion
    ###################################
    def _try_complete_field(self, end: int) -> None:
        key = self.state.current_key
        if not key:
            return

        if not self.tracker.is_tracking(key) or self.tracker.is_complete(key):
            self._reset_field_state()
            return

        start = self.offsets.value_start
        raw = self.buffer[start:end].strip()
        value = self._parse_value(raw)

        if value is _UNPARSED:
            logger.log(LOG_LEVEL, f"Field '{key}' did not parse: {raw[:40]!r}")
            if self.options.recover and self._recovery_attempts < MAX_RECOVERY_ATTEMPTS:
                self._attempt_recovery(key, raw, start)
        else:
            self._complete_field(key, value)

        self._reset_field_state()

    def _parse_value(self, raw: str) -> Any:
        try:
            return strict_loads(raw)
        except ValueError:
            if not self.options.repair:
                return _UNPARSED
        try:
            return strict_loads(self._repairer.repair(raw))
        except ValueError:
            return _UNPARSED

    def _complete_field(self, key: str, value: Any) -> None:
        if not self.tracker.complete_field(key, value):
            return
        logger.log(LOG_LEVEL, f"Field '{key}' complete")

        if self.options.on_field_complete:
            self.options.on_field_complete(key, value)
        if self.options.on_value_chunk:
            self.options.on_value_chunk(key, json.dumps(value, ensure_ascii=False), True)

    def _attempt_recovery(self, key: str, raw: str, position: int) -> None:
        self._recovery_attempts += 1

        try:
            value = strict_loads(self._repairer.repair(raw))
        except ValueError:
            info = RecoveryInfo(
                strategy=RecoveryStrategy.SKIP_FIELD,
                position=position,
                description=f'Skipped field {key} after failed recovery',
                success=False,
            )
            logger.warning(info.description)
        else:
            self._complete_field(key, value)
            info = RecoveryInfo(
                strategy=RecoveryStrategy.REPAIR,
                position=position,
                description=f'Recovered field {key} using repair',
                success=True,
            )

        if self.options.on_recovery:
            self.options.on_recovery(info)

    def _reset_field_state(self) -> None:
        self.state.current_key = ''
        self.state.value_depth = 0
        self.offsets.clear_field()

    ###################################
    # Document Completion
    ###################################
    def _finalize(self, end: int) -> None:
        if self._finalized:
            return
        self._finalized = True

        text = self.buffer[self.offsets.document_start : end + 1]
        if self.options.repair:
            text = self._repairer.repair(text)

        try:
            result = strict_loads(text)
        except ValueError as e:
            self._fail_document(e)
            return

        self._result = result
        logger.log(LOG_LEVEL, f'Document complete after {self.bytes_processed} characters')
        if self.options.on_complete:
            self.options.on_complete(result)

    def _fail_document(self, cause: ValueError) -> None:
        partial = self.tracker.get_all_completed()

        if self.options.recover and partial:
            self._result = partial
            logger.warning(
                f'Document did not parse ({cause}); returning {len(partial)} completed field(s)'
            )
            if self.options.on_recovery:
                self.options.on_recovery(
                    RecoveryInfo(
                        strategy=RecoveryStrategy.PARTIAL_RESULT,
                        position=0,
                        description='Recovered partial result from completed fields',
                        success=True,
                    )
                )
            if self.options.on_complete:
                self.options.on_complete(partial)
            return

        error = LootError(
            f'Failed to parse streamed document: {cause}', LootErrorCode.PARSE_FAILED
        )
        error.__cause__ = cause
        logger.warning(error.message)
        if self.options.on_error:
            self.options.on_error(error)


_STRUCTURAL_HANDLERS: Dict[str, Callable[[IncrementalLoot, int], None]] = {
    '{': IncrementalLoot._on_open_brace,
    '}': IncrementalLoot._on_close_brace,
    '[': IncrementalLoot._on_open_bracket,
    ']': IncrementalLoot._on_close_bracket,
    ':': IncrementalLoot._on_colon,
    ',': IncrementalLoot._on_comma,
}
