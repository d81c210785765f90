from typing import Any, Dict, List, Literal, TypedDict, Union

from pydantic import Field

from lootjson._core.schema import RichBaseModel

SchemaType = Literal['string', 'number', 'integer', 'boolean', 'object', 'array', 'null']

# Keyword subset understood by SchemaValidator. `$ref`, `$defs` and the
# composition keywords cannot be written as class attributes.
LootSchema = TypedDict(
    'LootSchema',
    {
        'type': Union[SchemaType, List[SchemaType]],
        'properties': Dict[str, 'LootSchema'],
        'required': List[str],
        'additionalProperties': Union[bool, 'LootSchema'],
        'patternProperties': Dict[str, 'LootSchema'],
        'propertyNames': 'LootSchema',
        'items': Union['LootSchema', List['LootSchema']],
        'minItems': int,
        'maxItems': int,
        'uniqueItems': bool,
        'contains': 'LootSchema',
        'minLength': int,
        'maxLength': int,
        'pattern': str,
        'format': str,
        'minimum': float,
        'maximum': float,
        'exclusiveMinimum': float,
        'exclusiveMaximum': float,
        'multipleOf': float,
        'enum': List[Any],
        'const': Any,
        'allOf': List['LootSchema'],
        'anyOf': List['LootSchema'],
        'oneOf': List['LootSchema'],
        'not': 'LootSchema',
        'if': 'LootSchema',
        'then': 'LootSchema',
        'else': 'LootSchema',
        '$ref': str,
        'definitions': Dict[str, 'LootSchema'],
        '$defs': Dict[str, 'LootSchema'],
        'title': str,
        'description': str,
    },
    total=False,
)


class ValidationError(RichBaseModel):
    """
    One failed schema keyword.

    `expected` and `actual` are only present when the keyword reports them;
    `to_dict()` omits them otherwise.
    """

    path: str
    message: str
    keyword: str
    expected: Any = None
    actual: Any = None

    def to_dict(self, exclude_unset: bool = True, **kwargs):
        return super().to_dict(exclude_unset=exclude_unset, **kwargs)


class ValidationResult(RichBaseModel):
    valid: bool
    data: Any = None
    errors: List[ValidationError] = Field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid

    def messages(self) -> List[str]:
        """Errors rendered as 'path: message' lines."""
        return [f'{error.path}: {error.message}' for error in self.errors]
