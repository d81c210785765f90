from lootjson.validation.formats import FORMAT_PATTERNS, check_format
from lootjson.validation.types import LootSchema, ValidationError, ValidationResult
from lootjson.validation.validator import SchemaValidator, validate

__all__ = [
    'SchemaValidator',
    'validate',
    'ValidationResult',
    'ValidationError',
    'LootSchema',
    'FORMAT_PATTERNS',
    'check_format',
]
