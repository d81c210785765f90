import copy

import pytest
from lootjson.validation import SchemaValidator, validate
from lootjson.validation.validator import canonical_json, deep_equal, get_type


def _keywords(result):
    return [error.keyword for error in result.errors]


class TestHelpers:
    @pytest.mark.parametrize(
        'value, expected',
        [
            (None, 'null'),
            (True, 'boolean'),
            (1, 'integer'),
            (2.0, 'integer'),
            (2.5, 'number'),
            ('a', 'string'),
            ([], 'array'),
            ({}, 'object'),
        ],
    )
    def test_get_type(self, value, expected):
        assert get_type(value) == expected

    def test_deep_equal(self):
        assert deep_equal({'a': [1, {'b': None}]}, {'a': [1.0, {'b': None}]})
        assert not deep_equal(True, 1)
        assert not deep_equal(0, False)
        assert not deep_equal({'a': 1}, {'a': 1, 'b': 2})
        assert not deep_equal([1, 2], [2, 1])
        assert not deep_equal('1', 1)

    def test_canonical_json_ignores_key_order(self):
        assert canonical_json({'b': 2, 'a': 1.0}) == canonical_json({'a': 1, 'b': 2})


class TestResult:
    def test_valid(self):
        data = {'name': 'Ada'}
        result = validate(data, {'type': 'object', 'required': ['name']})

        assert result.valid
        assert bool(result) is True
        assert result.data == data
        assert result.errors == []

    def test_invalid_has_no_data(self):
        result = validate({}, {'required': ['name']})

        assert not result.valid
        assert result.data is None
        assert result.messages() == ['name: Missing required property: name']

    def test_error_dict_omits_unset_details(self):
        required = validate({}, {'required': ['name']}).errors[0]
        assert required.to_dict() == {
            'path': 'name',
            'message': 'Missing required property: name',
            'keyword': 'required',
            'expected': 'name',
        }

        any_of = validate(1, {'anyOf': [{'type': 'string'}]}).errors[0]
        assert set(any_of.to_dict()) == {'path', 'message', 'keyword'}

    def test_validator_is_reusable(self):
        validator = SchemaValidator()
        assert not validator.validate('x', {'type': 'integer'}).valid
        assert validator.validate(1, {'type': 'integer'}).valid

    def test_schema_not_modified(self):
        schema = {
            '$defs': {'n': {'type': 'integer'}},
            'properties': {'a': {'$ref': '#/$defs/n'}},
            'required': ['a'],
        }
        snapshot = copy.deepcopy(schema)
        validate({'a': 'x'}, schema)
        assert schema == snapshot


class TestBooleanSchemas:
    def test_true_accepts_anything(self):
        assert validate({'any': 'thing'}, True).valid

    def test_false_rejects_everything(self):
        result = validate(1, False)
        assert _keywords(result) == ['schema']

    def test_false_property(self):
        result = validate({'secret': 1}, {'properties': {'secret': False}})
        assert result.errors[0].path == 'secret'


class TestType:
    @pytest.mark.parametrize(
        'value, type_, valid',
        [
            (1, 'integer', True),
            (2.0, 'integer', True),
            (1.5, 'integer', False),
            (True, 'integer', False),
            (1, 'number', True),
            (1.5, 'number', True),
            ('1', 'number', False),
            (False, 'boolean', True),
            (None, 'null', True),
            ([], 'object', False),
            ({}, 'object', True),
            ([], 'array', True),
        ],
    )
    def test_single_type(self, value, type_, valid):
        assert validate(value, {'type': type_}).valid is valid

    def test_union_message(self):
        result = validate(1, {'type': ['string', 'null']})

        error = result.errors[0]
        assert error.message == 'Expected string or null, got integer'
        assert error.expected == ['string', 'null']
        assert error.actual == 'integer'

    def test_union_accepts_member(self):
        assert validate(None, {'type': ['string', 'null']}).valid


class TestConstEnum:
    def test_const_deep_equality(self):
        assert validate({'a': [1, 2]}, {'const': {'a': [1, 2.0]}}).valid
        assert not validate(1, {'const': True}).valid

    def test_const_message(self):
        result = validate('b', {'const': 'a'})
        assert result.errors[0].message == 'Expected constant value "a"'

    def test_enum(self):
        assert validate([1], {'enum': [[1], 'a']}).valid

        result = validate('x', {'enum': ['a', 'b']})
        assert result.errors[0].keyword == 'enum'
        assert result.errors[0].message == 'Value must be one of: "a", "b"'


class TestString:
    def test_length(self):
        assert _keywords(validate('ab', {'minLength': 3})) == ['minLength']
        assert _keywords(validate('abcd', {'maxLength': 3})) == ['maxLength']
        assert validate('abc', {'minLength': 3, 'maxLength': 3}).valid

    def test_pattern_searches(self):
        assert validate('abc123', {'pattern': r'\d+'}).valid
        assert not validate('abc', {'pattern': r'^\d+$'}).valid

    def test_invalid_pattern_is_skipped(self):
        assert validate('abc', {'pattern': '('}).valid

    def test_format(self):
        assert validate('2024-01-15', {'format': 'date'}).valid

        error = validate('not-a-date', {'format': 'date'}).errors[0]
        assert error.keyword == 'format'
        assert error.message == 'String must be a valid date'

    def test_string_keywords_ignore_other_shapes(self):
        assert validate(12345, {'maxLength': 2, 'pattern': '^a'}).valid


class TestNumber:
    def test_bounds(self):
        assert _keywords(validate(-1, {'minimum': 0})) == ['minimum']
        assert _keywords(validate(11, {'maximum': 10})) == ['maximum']
        assert validate(0, {'minimum': 0, 'maximum': 0}).valid

    def test_exclusive_bounds(self):
        assert _keywords(validate(0, {'exclusiveMinimum': 0})) == ['exclusiveMinimum']
        assert _keywords(validate(10, {'exclusiveMaximum': 10})) == ['exclusiveMaximum']
        assert validate(0.5, {'exclusiveMinimum': 0, 'exclusiveMaximum': 1}).valid

    def test_boolean_exclusive_bounds_are_ignored(self):
        assert validate(0, {'minimum': 0, 'exclusiveMinimum': True}).valid

    @pytest.mark.parametrize(
        'value, divisor, valid',
        [
            (10, 5, True),
            (7, 5, False),
            (0.3, 0.1, True),
            (0.35, 0.1, False),
            (-9, 3, True),
            (4.5, 1.5, True),
        ],
    )
    def test_multiple_of(self, value, divisor, valid):
        assert validate(value, {'multipleOf': divisor}).valid is valid

    def test_integer_recheck(self):
        result = validate(1.5, {'type': 'integer'})
        assert not result.valid
        assert set(_keywords(result)) == {'type'}


class TestObject:
    def test_nested_path(self):
        schema = {
            'type': 'object',
            'properties': {
                'user': {
                    'type': 'object',
                    'properties': {'age': {'type': 'integer', 'minimum': 0}},
                }
            },
        }
        result = validate({'user': {'age': -5}}, schema)

        error = result.errors[0]
        assert error.path == 'user.age'
        assert error.keyword == 'minimum'
        assert error.expected == 0
        assert error.actual == -5

    def test_nested_required_path(self):
        schema = {'properties': {'user': {'required': ['name']}}}
        assert validate({'user': {}}, schema).errors[0].path == 'user.name'

    def test_required_reports_each_missing_key(self):
        result = validate({'a': 1}, {'required': ['a', 'b', 'c']})
        assert [error.path for error in result.errors] == ['b', 'c']

    def test_additional_properties_false(self):
        schema = {'properties': {'name': {}}, 'additionalProperties': False}
        result = validate({'name': 'x', 'extra': 1}, schema)

        error = result.errors[0]
        assert error.keyword == 'additionalProperties'
        assert error.message == 'Unknown property: extra'
        assert error.path == '(root)'
        assert error.actual == 'extra'

    def test_additional_properties_schema(self):
        schema = {'properties': {'name': {}}, 'additionalProperties': {'type': 'integer'}}
        assert validate({'name': 'x', 'count': 1}, schema).valid

        result = validate({'name': 'x', 'count': 'one'}, schema)
        assert result.errors[0].path == 'count'

    def test_pattern_properties(self):
        schema = {
            'patternProperties': {'^s_': {'type': 'string'}},
            'additionalProperties': False,
        }
        assert validate({'s_name': 'x'}, schema).valid

        result = validate({'s_name': 1, 'other': 2}, schema)
        assert [(e.path, e.keyword) for e in result.errors] == [
            ('s_name', 'type'),
            ('(root)', 'additionalProperties'),
        ]

    def test_property_names(self):
        result = validate({'ok': 1, 'Bad': 2}, {'propertyNames': {'pattern': '^[a-z]+$'}})

        assert _keywords(result) == ['propertyNames']
        assert result.errors[0].path == 'Bad'


class TestArray:
    def test_length(self):
        assert _keywords(validate([], {'minItems': 1})) == ['minItems']
        assert _keywords(validate([1, 2, 3], {'maxItems': 2})) == ['maxItems']

    def test_items_path(self):
        result = validate(['a', 1], {'items': {'type': 'string'}})
        assert result.errors[0].path == '1'

    def test_tuple_items(self):
        schema = {'items': [{'type': 'integer'}, {'type': 'string'}]}
        assert validate([1, 'a', {'extra': True}], schema).valid
        assert validate([1], schema).valid
        assert validate(['a', 1], schema).errors[0].path == '0'

    @pytest.mark.parametrize(
        'value, valid',
        [
            ([1, 2, 3], True),
            ([1, 1.0, 2], False),
            (['1', 1], True),
            ([{'a': 1, 'b': 2}, {'b': 2, 'a': 1}], False),
            ([[1], [1]], False),
        ],
    )
    def test_unique_items(self, value, valid):
        assert validate(value, {'uniqueItems': True}).valid is valid

    def test_unique_items_reports_first_duplicate(self):
        result = validate([1, 1, 2, 2], {'uniqueItems': True})
        assert len(result.errors) == 1
        assert 'index 1' in result.errors[0].message

    def test_contains(self):
        assert validate([1, 'a'], {'contains': {'type': 'string'}}).valid
        assert _keywords(validate([1, 2], {'contains': {'type': 'string'}})) == ['contains']


class TestComposition:
    def test_all_of(self):
        schema = {'allOf': [{'type': 'integer'}, {'minimum': 10}]}
        assert validate(12, schema).valid
        assert _keywords(validate(5, schema)) == ['minimum']

    def test_any_of_hides_branch_errors(self):
        schema = {'anyOf': [{'type': 'string'}, {'type': 'integer'}]}
        assert validate(1, schema).valid

        result = validate(True, schema)
        assert _keywords(result) == ['anyOf']
        assert result.errors[0].message == 'Value must match at least one schema in anyOf'

    @pytest.mark.parametrize('value, valid', [(9, True), (10, True), (15, False), (7, False)])
    def test_one_of(self, value, valid):
        schema = {'oneOf': [{'multipleOf': 3}, {'multipleOf': 5}]}
        assert validate(value, schema).valid is valid

    def test_one_of_reports_match_count(self):
        schema = {'oneOf': [{'multipleOf': 3}, {'multipleOf': 5}]}
        error = validate(15, schema).errors[0]

        assert error.message == 'Value must match exactly one schema in oneOf (matched 2)'
        assert error.expected == 1
        assert error.actual == 2

    def test_not(self):
        assert validate('x', {'not': {'type': 'integer'}}).valid
        assert _keywords(validate(1, {'not': {'type': 'integer'}})) == ['not']

    def test_if_then_else(self):
        schema = {
            'if': {'properties': {'kind': {'const': 'item'}}},
            'then': {'required': ['damage']},
            'else': {'required': ['name']},
        }
        assert validate({'kind': 'item', 'damage': 5}, schema).valid
        assert validate({'kind': 'npc', 'name': 'Bob'}, schema).valid
        assert validate({'kind': 'item'}, schema).errors[0].path == 'damage'
        assert validate({'kind': 'npc'}, schema).errors[0].path == 'name'


class TestReferences:
    def test_definitions_pointer(self):
        schema = {
            'definitions': {
                'address': {
                    'type': 'object',
                    'required': ['street'],
                    'properties': {'street': {'type': 'string'}},
                }
            },
            'properties': {'home': {'$ref': '#/definitions/address'}},
        }
        assert validate({'home': {'street': 'Main'}}, schema).valid

        error = validate({'home': {}}, schema).errors[0]
        assert error.keyword == 'required'
        assert error.path == 'home.street'

    def test_defs_and_bare_names(self):
        schema = {
            '$defs': {'positive': {'type': 'number', 'minimum': 0}},
            'properties': {'a': {'$ref': 'positive'}, 'b': {'$ref': '#positive'}},
        }
        assert validate({'a': 1, 'b': 2}, schema).valid
        assert [e.path for e in validate({'a': -1, 'b': -2}, schema).errors] == ['a', 'b']

    def test_recursive_schema(self):
        schema = {
            '$defs': {
                'node': {
                    'type': 'object',
                    'properties': {
                        'value': {'type': 'integer'},
                        'children': {'type': 'array', 'items': {'$ref': '#/$defs/node'}},
                    },
                }
            },
            '$ref': '#/$defs/node',
        }
        tree = {'value': 1, 'children': [{'value': 2, 'children': [{'value': 'x'}]}]}

        error = validate(tree, schema).errors[0]
        assert error.path == 'children.0.children.0.value'

    def test_self_reference_terminates(self):
        assert validate({'a': 1}, {'$ref': '#'}).valid

    def test_unresolved_reference(self):
        result = validate(1, {'$ref': '#/definitions/missing'})

        error = result.errors[0]
        assert error.keyword == '$ref'
        assert error.expected == '#/definitions/missing'

    def test_shared_definition_fails_independently(self):
        schema = {
            'definitions': {
                'address': {
                    'type': 'object',
                    'required': ['street', 'city'],
                    'properties': {'street': {'type': 'string'}, 'city': {'type': 'string'}},
                }
            },
            'type': 'object',
            'properties': {
                'billing': {'$ref': '#/definitions/address'},
                'shipping': {'$ref': '#/definitions/address'},
            },
        }
        both = {'street': 'Main', 'city': 'Springfield'}
        assert validate({'billing': both, 'shipping': dict(both)}, schema).valid

        result = validate({'billing': both, 'shipping': {'street': 'Elm'}}, schema)
        assert [(e.path, e.keyword) for e in result.errors] == [('shipping.city', 'required')]


@pytest.mark.parametrize(
    'data',
    [{'a': [1, {'b': None}]}, [1, 'two', 3.5], 'text', 0, None, True],
)
def test_empty_schema_accepts_any_value(data):
    assert validate(data, {}).valid
