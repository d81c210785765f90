from typing import Any, List, Mapping, Optional, Union

from pydantic import ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from lootjson._core.error import ConfigurationError
from lootjson._core.schema import RichBaseModel, RichEnum


class RepairType(str, RichEnum):
    """Kinds of non-standard syntax the repairer knows how to fix."""

    TRAILING_COMMA = 'trailing_comma'
    SINGLE_QUOTE = 'single_quote'
    SINGLE_LINE_COMMENT = 'single_line_comment'
    MULTI_LINE_COMMENT = 'multi_line_comment'
    UNQUOTED_KEY = 'unquoted_key'
    INVALID_VALUE = 'invalid_value'
    UNESCAPED_NEWLINE = 'unescaped_newline'


class RepairLog(RichBaseModel):
    """One applied repair. Coordinates are 0-based position, 1-based line/column."""

    model_config = ConfigDict(extra='forbid', frozen=True)

    kind: RepairType
    position: Optional[int] = None
    line: Optional[int] = None
    column: Optional[int] = None
    description: str
    fixed: bool = True

    def shifted(self, position: int = 0, line: int = 0, column: int = 0) -> 'RepairLog':
        """Return a copy with coordinates moved by the given offsets."""
        update = {}
        if self.position is not None:
            update['position'] = self.position + position
        if self.line is not None:
            update['line'] = self.line + line
        if self.column is not None and self.line == 1:
            update['column'] = self.column + column
        return self.model_copy(update=update)


class RepairResult(RichBaseModel):
    text: str
    repairs: List[RepairLog] = Field(default_factory=list)


class RepairRules(RichBaseModel):
    """
    Independent toggles, one per repair kind. All rules are enabled by default.

    Rule names may be given in snake_case (`trailing_comma`) or camelCase
    (`trailingComma`).
    """

    model_config = ConfigDict(
        extra='forbid',
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    trailing_comma: bool = True
    single_quotes: bool = True
    single_line_comments: bool = True
    multi_line_comments: bool = True
    unquoted_keys: bool = True
    invalid_values: bool = True
    unescaped_newlines: bool = True

    @classmethod
    def merge(
        cls,
        overrides: Union['RepairRules', Mapping[str, Any], None] = None,
        base: Optional['RepairRules'] = None,
    ) -> 'RepairRules':
        """
        Merge per-rule overrides onto `base` (the defaults when omitted).

        Args:
            overrides: A RepairRules instance or a mapping of rule name to bool.
            base: Rules to start from.

        Returns:
            A new RepairRules instance; neither input is modified.
        """
        base = base or DEFAULT_REPAIR_RULES
        if overrides is None:
            return base
        if isinstance(overrides, RepairRules):
            return overrides
        if not isinstance(overrides, Mapping):
            raise ConfigurationError(
                f'Repair rules must be a mapping, got {type(overrides).__name__}'
            )

        by_alias = {
            field.alias: name for name, field in cls.model_fields.items() if field.alias
        }
        merged = base.model_dump()
        for key, enabled in overrides.items():
            name = key if key in cls.model_fields else by_alias.get(key)
            if name is None:
                raise ConfigurationError(
                    f"Unknown repair rule '{key}'. Known rules: {', '.join(cls.model_fields)}"
                )
            merged[name] = enabled

        try:
            return cls.model_validate(merged)
        except ValidationError as e:
            raise ConfigurationError(f'Invalid repair rules: {e}') from e

    def enabled(self) -> List[str]:
        return [name for name, value in self.model_dump().items() if value]


DEFAULT_REPAIR_RULES = RepairRules()
