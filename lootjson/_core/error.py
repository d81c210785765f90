from __future__ import annotations

from typing import Any, Optional

from lootjson._core.schema import RichEnum


class CustomBaseException(Exception):
    """
    Base exception class.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class LootErrorCode(str, RichEnum):
    """Distinguishable failure kinds raised by the wrapper layer."""

    EMPTY_INPUT = 'EMPTY_INPUT'
    NO_JSON_FOUND = 'NO_JSON_FOUND'
    PARSE_FAILED = 'PARSE_FAILED'
    FIELD_NOT_FOUND = 'FIELD_NOT_FOUND'
    VALIDATION_FAILED = 'VALIDATION_FAILED'


class LootError(CustomBaseException):
    """
    Raised by `loot` and `loot_field` when no usable result could be produced
    and the caller did not ask for silent mode.
    """

    def __init__(
        self,
        message: str,
        code: LootErrorCode,
        details: Optional[Any] = None,
    ):
        self.code = LootErrorCode.from_str(code) if isinstance(code, str) else code
        self.details = details
        super().__init__(message)

    def __repr__(self) -> str:
        return f'LootError(code={self.code.value!r}, message={self.message!r})'


def is_loot_error(error: Any) -> bool:
    """Return True when `error` is a LootError instance."""
    return isinstance(error, LootError)


class ConfigurationError(CustomBaseException):
    """Raised when there's an error in a configuration file or option set."""

    pass
