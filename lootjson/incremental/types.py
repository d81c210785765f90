from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from pydantic import Field, field_validator

from lootjson._core.environment import settings
from lootjson._core.parsers.repair.types import RepairRules
from lootjson._core.schema import RichBaseModel, RichEnum


class RecoveryStrategy(str, RichEnum):
    REPAIR = 'repair'
    SKIP_FIELD = 'skip_field'
    PARTIAL_RESULT = 'partial_result'


class ProgressInfo(RichBaseModel):
    """Snapshot passed to `on_progress` after every chunk."""

    bytes_processed: int
    bytes_buffered: int
    fields_completed: List[str] = Field(default_factory=list)
    estimated_progress: Optional[float] = Field(
        default=None,
        description='Completed tracked fields / tracked fields; only set with a field allow-list.',
    )


class RecoveryInfo(RichBaseModel):
    strategy: RecoveryStrategy
    position: int = 0
    description: str = ''
    success: bool = False


class ParserStats(RichBaseModel):
    bytes_processed: int
    buffer_size: int
    fields_completed: int
    is_complete: bool


class IncrementalLootOptions(RichBaseModel):
    """
    Options for `IncrementalLoot`.

    Callback signatures:
        on_field_start(name)
        on_field_complete(name, value)
        on_value_chunk(name, serialized_value, is_final)
        on_progress(ProgressInfo)
        on_complete(result)
        on_error(exception)
        on_recovery(RecoveryInfo)
    """

    fields: List[str] = Field(
        default_factory=list,
        description='Top-level keys to report on. Empty means every key.',
    )
    repair: bool = Field(default=True, description='Repair values that fail to parse.')
    max_buffer_size: int = Field(
        default_factory=lambda: settings.incremental_max_buffer_size,
        gt=0,
        description='Buffer length (characters) above which the buffer is compacted.',
    )
    recover: bool = Field(
        default=False, description='Fall back to field recovery and partial results.'
    )
    rules: Optional[RepairRules] = None

    on_field_start: Optional[Callable[..., Any]] = None
    on_field_complete: Optional[Callable[..., Any]] = None
    on_value_chunk: Optional[Callable[..., Any]] = None
    on_progress: Optional[Callable[..., Any]] = None
    on_complete: Optional[Callable[..., Any]] = None
    on_error: Optional[Callable[..., Any]] = None
    on_recovery: Optional[Callable[..., Any]] = None

    @field_validator('rules', mode='before')
    @classmethod
    def _merge_rules(cls, value: Any) -> Optional[RepairRules]:
        if value is None:
            return None
        return RepairRules.merge(value)


@dataclass
class ParserState:
    """Structural scan state of one IncrementalLoot."""

    depth: int = 0
    in_string: bool = False
    escape_next: bool = False
    current_key: str = ''
    value_depth: int = 0
    json_started: bool = False
    json_complete: bool = False


@dataclass
class BufferOffsets:
    """Buffer positions that must move together when the buffer is compacted."""

    processed: int = 0
    document_start: Optional[int] = None
    key_start: Optional[int] = None
    value_start: Optional[int] = None

    def rebase(self, discarded: int) -> None:
        """Shift every offset left after `discarded` leading characters are dropped."""
        self.processed = max(0, self.processed - discarded)
        if self.document_start is not None:
            self.document_start = max(0, self.document_start - discarded)
        if self.key_start is not None:
            self.key_start -= discarded
        if self.value_start is not None:
            self.value_start -= discarded

    def clear_field(self) -> None:
        self.key_start = None
        self.value_start = None
