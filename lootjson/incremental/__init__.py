from lootjson.incremental.field_tracker import FieldTracker
from lootjson.incremental.parser import IncrementalLoot, IncrementalResult
from lootjson.incremental.types import (
    IncrementalLootOptions,
    ParserStats,
    ProgressInfo,
    RecoveryInfo,
    RecoveryStrategy,
)

__all__ = [
    'IncrementalLoot',
    'IncrementalResult',
    'IncrementalLootOptions',
    'FieldTracker',
    'ParserStats',
    'ProgressInfo',
    'RecoveryInfo',
    'RecoveryStrategy',
]
