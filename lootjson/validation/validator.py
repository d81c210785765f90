import json
import math
import re
from functools import lru_cache
from typing import Any, Dict, List, Optional, Pattern, Tuple

from lootjson._core.logging import get_logger
from lootjson.validation.formats import check_format
from lootjson.validation.types import LootSchema, ValidationError, ValidationResult

logger = get_logger(__name__)

MULTIPLE_OF_TOLERANCE = 1e-10


###################################
# Value helpers
###################################
def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integral(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def get_type(value: Any) -> str:
    """JSON shape of a Python value; integral floats report as 'integer'."""
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'boolean'
    if _is_number(value):
        return 'integer' if _is_integral(value) else 'number'
    if isinstance(value, str):
        return 'string'
    if isinstance(value, (list, tuple)):
        return 'array'
    if isinstance(value, dict):
        return 'object'
    return type(value).__name__


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality without bool/number coercion (`1 == 1.0`, `True != 1`)."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) or _is_number(b):
        return _is_number(a) and _is_number(b) and a == b

    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(deep_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, (list, tuple)) or isinstance(b, (list, tuple)):
        return False

    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(deep_equal(a[k], b[k]) for k in a)
    if isinstance(a, dict) or isinstance(b, dict):
        return False

    return type(a) is type(b) and a == b


def _canonical(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    if isinstance(value, dict):
        return {key: _canonical(item) for key, item in value.items()}
    return value


def canonical_json(value: Any) -> str:
    """Serialization under which deep-equal values compare equal."""
    return json.dumps(_canonical(value), sort_keys=True, default=str)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> Optional[Pattern]:
    try:
        return re.compile(pattern)
    except re.error:
        logger.debug(f'Skipping invalid schema pattern: {pattern!r}')
        return None


def _unescape_pointer(token: str) -> str:
    return token.replace('~1', '/').replace('~0', '~')


def _collect_definitions(schema: Any) -> Dict[str, Any]:
    if not isinstance(schema, dict):
        return {}
    definitions: Dict[str, Any] = {}
    for key in ('$defs', 'definitions'):
        section = schema.get(key)
        if isinstance(section, dict):
            definitions.update(section)
    return definitions


class SchemaValidator:
    """
    Validates parsed JSON values against a JSON-Schema-like subset.

    Supported keywords: type, const, enum, string (minLength, maxLength,
    pattern, format), number (minimum, maximum, exclusiveMinimum,
    exclusiveMaximum, multipleOf), object (required, properties,
    patternProperties, additionalProperties, propertyNames), array (items,
    minItems, maxItems, uniqueItems, contains), composition (allOf, anyOf,
    oneOf, not), if/then/else and $ref with definitions / $defs.

    An instance keeps per-call state; do not share one across concurrent
    `validate` calls.

    Example:
        >>> result = SchemaValidator().validate(
        ...     {'name': 'Ada', 'age': 36},
        ...     {'type': 'object', 'required': ['name']},
        ... )
        >>> result.valid
        True
    """

    def __init__(
        self,
        root: Optional[LootSchema] = None,
        definitions: Optional[Dict[str, Any]] = None,
    ):
        self.errors: List[ValidationError] = []
        self._path: List[str] = []
        self._root = root
        self._definitions = definitions or {}
        self._ref_stack: List[Tuple[str, int]] = []

    def validate(self, data: Any, schema: LootSchema) -> ValidationResult:
        """
        Validate `data` against `schema`.

        Args:
            data: A parsed JSON value.
            schema: Schema tree; never modified.

        Returns:
            ValidationResult with `data` set only when valid.
        """
        self.errors = []
        self._path = []
        self._root = schema
        self._definitions = _collect_definitions(schema)
        self._ref_stack = []

        self._validate_value(data, schema)

        valid = not self.errors
        return ValidationResult(
            valid=valid, data=data if valid else None, errors=list(self.errors)
        )

    ###################################
    # Dispatch
    ###################################
    def _validate_value(self, value: Any, schema: Any) -> None:
        if schema is True or schema is None:
            return
        if schema is False:
            self._add_error('schema', 'No value is allowed here', actual=value)
            return
        if not isinstance(schema, dict):
            return

        if '$ref' in schema:
            self._validate_ref(value, schema['$ref'])
            return

        self._validate_composition(value, schema)
        self._validate_conditional(value, schema)

        if 'type' in schema:
            self._validate_type(value, schema['type'])
        if 'const' in schema:
            self._validate_const(value, schema['const'])
        if 'enum' in schema:
            self._validate_enum(value, schema['enum'])

        shape = get_type(value)
        if shape == 'string':
            self._validate_string(value, schema)
        elif shape in ('number', 'integer'):
            self._validate_number(value, schema)
        elif shape == 'object':
            self._validate_object(value, schema)
        elif shape == 'array':
            self._validate_array(value, schema)

    def _isolated(self, value: Any, schema: Any) -> bool:
        """Validate in a child validator whose errors never reach this one."""
        child = SchemaValidator(root=self._root, definitions=self._definitions)
        child._path = list(self._path)
        child._ref_stack = list(self._ref_stack)
        child._validate_value(value, schema)
        return not child.errors

    ###################################
    # References
    ###################################
    def _resolve_ref(self, ref: str) -> Any:
        if ref in ('#', ''):
            return self._root

        name = ref[1:] if ref.startswith('#') else ref
        if '/' not in name:
            return self._definitions.get(name)

        node: Any = self._root
        for token in name.strip('/').split('/'):
            token = _unescape_pointer(token)
            if isinstance(node, dict) and token in node:
                node = node[token]
            elif isinstance(node, list) and token.isdigit() and int(token) < len(node):
                node = node[int(token)]
            else:
                return None
        return node

    def _validate_ref(self, value: Any, ref: str) -> None:
        resolved = self._resolve_ref(ref)
        if resolved is None:
            self._add_error('$ref', f'Cannot resolve reference: {ref}', expected=ref)
            return

        # same ref on the same value means the schema recursed without descending
        marker = (ref, id(value))
        if marker in self._ref_stack:
            return

        self._ref_stack.append(marker)
        try:
            self._validate_value(value, resolved)
        finally:
            self._ref_stack.pop()

    ###################################
    # Composition & conditionals
    ###################################
    def _validate_composition(self, value: Any, schema: Dict[str, Any]) -> None:
        if 'allOf' in schema:
            for sub_schema in schema['allOf']:
                self._validate_value(value, sub_schema)

        if 'anyOf' in schema:
            if not any(self._isolated(value, s) for s in schema['anyOf']):
                self._add_error(
                    'anyOf', 'Value must match at least one schema in anyOf'
                )

        if 'oneOf' in schema:
            matches = sum(1 for s in schema['oneOf'] if self._isolated(value, s))
            if matches != 1:
                self._add_error(
                    'oneOf',
                    f'Value must match exactly one schema in oneOf (matched {matches})',
                    expected=1,
                    actual=matches,
                )

        if 'not' in schema:
            if self._isolated(value, schema['not']):
                self._add_error('not', 'Value must not match the schema in not')

    def _validate_conditional(self, value: Any, schema: Dict[str, Any]) -> None:
        if 'if' not in schema:
            return
        if self._isolated(value, schema['if']):
            if 'then' in schema:
                self._validate_value(value, schema['then'])
        elif 'else' in schema:
            self._validate_value(value, schema['else'])

    ###################################
    # Generic keywords
    ###################################
    def _validate_type(self, value: Any, type_: Any) -> None:
        types = type_ if isinstance(type_, list) else [type_]
        actual = get_type(value)

        def _matches(expected: str) -> bool:
            if expected == 'integer':
                return actual == 'integer'
            if expected == 'number':
                return actual in ('number', 'integer')
            return expected == actual

        if not any(_matches(t) for t in types):
            self._add_error(
                'type',
                f"Expected {' or '.join(types)}, got {actual}",
                expected=types,
                actual=actual,
            )

    def _validate_const(self, value: Any, const: Any) -> None:
        if not deep_equal(value, const):
            self._add_error(
                'const',
                f'Expected constant value {json.dumps(const, default=str)}',
                expected=const,
                actual=value,
            )

    def _validate_enum(self, value: Any, options: List[Any]) -> None:
        if not any(deep_equal(value, option) for option in options):
            listed = ', '.join(json.dumps(option, default=str) for option in options)
            self._add_error(
                'enum',
                f'Value must be one of: {listed}',
                expected=options,
                actual=value,
            )

    ###################################
    # Shape-specific keywords
    ###################################
    def _validate_string(self, value: str, schema: Dict[str, Any]) -> None:
        if 'minLength' in schema and len(value) < schema['minLength']:
            self._add_error(
                'minLength',
                f"String must be at least {schema['minLength']} characters",
                expected=schema['minLength'],
                actual=len(value),
            )

        if 'maxLength' in schema and len(value) > schema['maxLength']:
            self._add_error(
                'maxLength',
                f"String must be at most {schema['maxLength']} characters",
                expected=schema['maxLength'],
                actual=len(value),
            )

        if 'pattern' in schema:
            regex = _compile(schema['pattern'])
            if regex is not None and not regex.search(value):
                self._add_error(
                    'pattern',
                    f"String must match pattern: {schema['pattern']}",
                    expected=schema['pattern'],
                    actual=value,
                )

        if 'format' in schema and not check_format(value, schema['format']):
            self._add_error(
                'format',
                f"String must be a valid {schema['format']}",
                expected=schema['format'],
                actual=value,
            )

    def _validate_number(self, value: float, schema: Dict[str, Any]) -> None:
        if schema.get('type') == 'integer' and not _is_integral(value):
            self._add_error(
                'type', 'Value must be an integer', expected='integer', actual=value
            )

        if 'minimum' in schema and value < schema['minimum']:
            self._add_error(
                'minimum',
                f"Value must be >= {schema['minimum']}",
                expected=schema['minimum'],
                actual=value,
            )

        if 'maximum' in schema and value > schema['maximum']:
            self._add_error(
                'maximum',
                f"Value must be <= {schema['maximum']}",
                expected=schema['maximum'],
                actual=value,
            )

        exclusive_min = schema.get('exclusiveMinimum')
        if _is_number(exclusive_min) and value <= exclusive_min:
            self._add_error(
                'exclusiveMinimum',
                f'Value must be > {exclusive_min}',
                expected=exclusive_min,
                actual=value,
            )

        exclusive_max = schema.get('exclusiveMaximum')
        if _is_number(exclusive_max) and value >= exclusive_max:
            self._add_error(
                'exclusiveMaximum',
                f'Value must be < {exclusive_max}',
                expected=exclusive_max,
                actual=value,
            )

        divisor = schema.get('multipleOf')
        if _is_number(divisor) and divisor != 0:
            remainder = abs(math.fmod(value, divisor))
            if (
                remainder > MULTIPLE_OF_TOLERANCE
                and abs(remainder - abs(divisor)) > MULTIPLE_OF_TOLERANCE
            ):
                self._add_error(
                    'multipleOf',
                    f'Value must be a multiple of {divisor}',
                    expected=divisor,
                    actual=value,
                )

    def _validate_object(self, value: Dict[str, Any], schema: Dict[str, Any]) -> None:
        for key in schema.get('required', []):
            if key not in value:
                self._path.append(key)
                self._add_error(
                    'required', f'Missing required property: {key}', expected=key
                )
                self._path.pop()

        if 'propertyNames' in schema:
            for key in value:
                if not self._isolated(key, schema['propertyNames']):
                    self._path.append(key)
                    self._add_error(
                        'propertyNames',
                        f'Property name {key!r} does not match schema',
                        actual=key,
                    )
                    self._path.pop()

        properties = schema.get('properties', {})
        for key, sub_schema in properties.items():
            if key in value:
                self._path.append(key)
                self._validate_value(value[key], sub_schema)
                self._path.pop()

        patterns = [
            (regex, sub_schema)
            for regex, sub_schema in (
                (_compile(pattern), sub_schema)
                for pattern, sub_schema in schema.get('patternProperties', {}).items()
            )
            if regex is not None
        ]
        for regex, sub_schema in patterns:
            for key in value:
                if regex.search(key):
                    self._path.append(key)
                    self._validate_value(value[key], sub_schema)
                    self._path.pop()

        additional = schema.get('additionalProperties', True)
        if additional is True:
            return

        for key in value:
            if key in properties or any(regex.search(key) for regex, _ in patterns):
                continue
            if additional is False:
                self._add_error(
                    'additionalProperties', f'Unknown property: {key}', actual=key
                )
            else:
                self._path.append(key)
                self._validate_value(value[key], additional)
                self._path.pop()

    def _validate_array(self, value: List[Any], schema: Dict[str, Any]) -> None:
        if 'minItems' in schema and len(value) < schema['minItems']:
            self._add_error(
                'minItems',
                f"Array must have at least {schema['minItems']} items",
                expected=schema['minItems'],
                actual=len(value),
            )

        if 'maxItems' in schema and len(value) > schema['maxItems']:
            self._add_error(
                'maxItems',
                f"Array must have at most {schema['maxItems']} items",
                expected=schema['maxItems'],
                actual=len(value),
            )

        if schema.get('uniqueItems'):
            seen = set()
            for index, item in enumerate(value):
                key = canonical_json(item)
                if key in seen:
                    self._add_error(
                        'uniqueItems',
                        f'Array items must be unique (duplicate at index {index})',
                        actual=item,
                    )
                    break
                seen.add(key)

        if 'contains' in schema:
            if not any(self._isolated(item, schema['contains']) for item in value):
                self._add_error(
                    'contains', 'Array must contain at least one matching item'
                )

        items = schema.get('items')
        if isinstance(items, list):
            # extra elements beyond the tuple are unconstrained
            for index, (item, sub_schema) in enumerate(zip(value, items)):
                self._path.append(str(index))
                self._validate_value(item, sub_schema)
                self._path.pop()
        elif items is not None:
            for index, item in enumerate(value):
                self._path.append(str(index))
                self._validate_value(item, items)
                self._path.pop()

    ###################################
    # Errors
    ###################################
    def _add_error(self, keyword: str, message: str, **details: Any) -> None:
        self.errors.append(
            ValidationError(
                path='.'.join(self._path) if self._path else '(root)',
                message=message,
                keyword=keyword,
                **details,
            )
        )


def validate(data: Any, schema: LootSchema) -> ValidationResult:
    """
    Validate data against a schema with a fresh SchemaValidator.

    Example:
        >>> validate({'age': -1}, {'properties': {'age': {'minimum': 0}}}).errors[0].path
        'age'
    """
    return SchemaValidator().validate(data, schema)
