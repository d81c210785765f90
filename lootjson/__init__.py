from typing import Optional

# Environment
from lootjson._core.environment import settings

# Errors
from lootjson._core.error import LootError, LootErrorCode, is_loot_error

# Configuration profiles
from lootjson._core.config.config import Config

# Repair
from lootjson._core.parsers.repair.repairer import repair_json
from lootjson._core.parsers.repair.streaming import StreamingRepair
from lootjson._core.parsers.repair.types import (
    DEFAULT_REPAIR_RULES,
    RepairLog,
    RepairResult,
    RepairRules,
    RepairType,
)

# Extraction
from lootjson._core.parsers.extract import (
    extract_by_braces,
    extract_from_markdown,
    find_json_candidates,
)
from lootjson._core.parsers.field_path import loot_field
from lootjson._core.parsers.loot import Looted, loot

# Incremental parsing
from lootjson.incremental import (
    FieldTracker,
    IncrementalLoot,
    IncrementalLootOptions,
    IncrementalResult,
    ParserStats,
    ProgressInfo,
    RecoveryInfo,
    RecoveryStrategy,
)

# Validation
from lootjson.validation import (
    LootSchema,
    SchemaValidator,
    ValidationError,
    ValidationResult,
    validate,
)

__version__ = '0.4.0'


def init(log_level: Optional[str] = None, log_rich: Optional[bool] = None) -> None:
    """
    Initialize lootjson logging with optional overrides.

    If not called, logging auto-configures from environment variables on
    first use.

    Args:
        log_level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR').
            If None, uses LOG_LEVEL env var or 'INFO'.
        log_rich: Enable rich formatting. If None, uses LOG_USE_RICH env var.

    Example:
        >>> import lootjson
        >>> lootjson.init(log_level='DEBUG')
    """
    from lootjson.logging import configure_logging

    configure_logging(level=log_level, use_rich=log_rich, force=True)


__all__ = [
    # Initialization
    'init',
    # Repair
    'repair_json',
    'StreamingRepair',
    'RepairRules',
    'DEFAULT_REPAIR_RULES',
    'RepairLog',
    'RepairResult',
    'RepairType',
    # Incremental parsing
    'IncrementalLoot',
    'IncrementalLootOptions',
    'IncrementalResult',
    'FieldTracker',
    'ProgressInfo',
    'RecoveryInfo',
    'RecoveryStrategy',
    'ParserStats',
    # Validation
    'SchemaValidator',
    'validate',
    'ValidationResult',
    'ValidationError',
    'LootSchema',
    # Extraction
    'loot',
    'loot_field',
    'Looted',
    'find_json_candidates',
    'extract_from_markdown',
    'extract_by_braces',
    # Errors
    'LootError',
    'LootErrorCode',
    'is_loot_error',
    # Configuration
    'Config',
    'settings',
]
