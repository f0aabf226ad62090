"""
### Filter Operation
Filtering corresponds to the `$match` stage of a MongoDB pipeline.

Example of filtering:

```python
crud.get_list(
    # only select grown-up females
    {
        # all conditions are AND-ed together
        'age': ['between', 18, 25],  # age 18..25
        'sex': 'female',  # sex = "female"
    },
)
```

#### Field Conditions

* `{ a: 1 }` - equality check. The value is stored as-is, so a native `{ a: {'$gte': 1} }` also works.
* `{ a: ['=', 1] }` - equality check: `$eq`.
* `{ a: ['!=', 1] }`, `{ a: ['<>', 1] }` - inequality check: `$ne`.
* `{ a: ['<', 1] }`, `['<=', 1]`, `['>', 1]`, `['>=', 1]` - comparisons.
* `{ a: ['like', 'word'] }` - case-insensitive regular expression match.
    An empty value means "no condition": optional search boxes do not filter anything.
* `{ a: ['in', '1,2,3'] }` - any of. The value is either a list, or a string delimited with `,` or `，`.
    Numeric tokens are converted to numbers.
* `{ a: ['not in', [1, 2]] }` - none of.
* `{ a: ['between', 10, 50] }` - a closed range: `10 <= a <= 50`.
* `{ a: [['>', 1], ['!=', 5]] }` - multiple conditions on the same field, AND-ed together.

Operators are case-insensitive.

An unknown operator is logged and ignored: the condition does not filter anything.
A malformed filter is thus degraded to a broader read rather than failing the request.

#### Boolean Conditions

* `{ and: {..criteria..} }` - all are true
* `{ or: [ {..criteria..}, .. ] }`  - any is true
* `[ {..criteria..}, .. ]` - a list of criteria, which is combined with `$or`

A node with `and` / `or` keys ignores any other keys it has.

#### Primary Key
A string or a number is a shortcut for the primary key: `'abc'` -> `{ _id: 'abc' }`.
"""

import logging
import re

from bson import ObjectId

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


logger = logging.getLogger(__name__)


# region Filter Expression Classes

def _is_array(value):
    return isinstance(value, (list, tuple))


_LIST_DELIMITERS = re.compile(r'[,，]')
_INT_RX = re.compile(r'^-?\d+$')
_FLOAT_RX = re.compile(r'^-?\d*\.\d+$')


def parse_list_value(value):
    """ Get a list of values for the `in` and `not in` operators

        Accepts a list, a set, or a string delimited with commas. Numeric tokens become numbers.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    if not isinstance(value, str):
        return [value]

    values = []
    for token in _LIST_DELIMITERS.split(value):
        token = token.strip()
        if not token:
            continue
        if _INT_RX.match(token):
            values.append(int(token))
        elif _FLOAT_RX.match(token):
            values.append(float(token))
        else:
            values.append(token)
    return values


class FilterExpressionBase:
    """ An expression from the MongoFilter object """

    __slots__ = ('operator_str', 'value')

    def __init__(self, operator_str, value):
        self.operator_str = operator_str
        self.value = value

    def compile_expression(self):
        """ Compiles the expression into a native MongoDB predicate """
        raise NotImplementedError()

    @staticmethod
    def mongo_anded_together(conditions):
        """ Take a list of predicates and AND them together into one predicate

            Predicates on different fields are simply merged into one document.
            If two predicates mention the same key, `$and` is used instead.
        """
        conditions = [c for c in conditions if c]

        # No conditions: an empty predicate matches everything
        if not conditions:
            return {}
        if len(conditions) == 1:
            return conditions[0]

        merged = {}
        for condition in conditions:
            if merged.keys() & condition.keys():
                return {'$and': conditions}
            merged.update(condition)
        return merged


def compile_criteria(expressions):
    """ Compile a list of parsed expressions

        :type expressions: list[FilterExpressionBase]
        :return: a predicate, or a list of predicates when the criteria was a list
        :rtype: dict | list[dict]
    """
    if len(expressions) == 1 and isinstance(expressions[0], FilterListExpression):
        return expressions[0].compile_expression()

    conditions = []
    for e in expressions:
        compiled = e.compile_expression()
        # A list of criteria next to other conditions: combine it right here
        if isinstance(compiled, list):
            compiled = {'$or': compiled} if compiled else {}
        conditions.append(compiled)
    return FilterExpressionBase.mongo_anded_together(conditions)


class FilterBooleanExpression(FilterExpressionBase):
    """ A boolean expression.

        Consists of: an operator ($and, $or), and a value (list of criteria: list[list[FilterExpressionBase]])
    """

    def __repr__(self):
        return '({}: {})'.format(self.operator_str, self.value)

    def compile_expression(self):
        members = []
        for criteria in self.value:
            compiled = compile_criteria(criteria)
            # A nested list of criteria joins the current boolean expression
            if isinstance(compiled, list):
                members.extend(compiled)
            else:
                members.append(compiled)

        # MongoDB does not accept empty lists here
        if not members:
            return {}
        return {self.operator_str: members}


class FilterListExpression(FilterExpressionBase):
    """ A list of criteria. Compiles into a list of predicates that the caller combines """

    def __init__(self, value):
        super(FilterListExpression, self).__init__(None, value)

    def __repr__(self):
        return '[{}]'.format(', '.join(map(repr, self.value)))

    def compile_expression(self):
        return [compile_criteria(criteria) for criteria in self.value]


class FilterLiteralExpression(FilterExpressionBase):
    """ A field compared to a literal value. The value is used as-is """

    __slots__ = ('field_name',)

    def __init__(self, field_name, value):
        super(FilterLiteralExpression, self).__init__('$eq', value)
        self.field_name = field_name

    def __repr__(self):
        return '{} = {!r}'.format(self.field_name, self.value)

    def compile_expression(self):
        return {self.field_name: self.value}


class FilterColumnExpression(FilterExpressionBase):
    """ An expression involving a field

        Consists of: a field name and a list of (operator, operator_lambda, operands) tuples.
        Every operator produces a part of the condition; they are merged into one.
    """

    __slots__ = ('field_name',)

    def __init__(self, field_name, conditions):
        super(FilterColumnExpression, self).__init__(None, conditions)
        self.field_name = field_name

    def __repr__(self):
        return '{} {}'.format(self.field_name,
                              ' & '.join('{} {!r}'.format(op, operands) for op, _, operands in self.value))

    def compile_expression(self):
        condition = {}
        for operator_str, operator_lambda, operands in self.value:
            condition.update(operator_lambda(*operands))

        # No condition on this field: the field is not mentioned at all
        if not condition:
            return {}
        return {self.field_name: condition}

# endregion


class MongoFilter(MongoQueryHandlerBase):
    """ Filter expression: compiles a FilterSpec into a native MongoDB predicate

        It is used for the `$match` stage, as well as for find() and count_documents()
    """

    query_object_section_name = 'filter'

    def __init__(self, force_filter=None, scalar_operators=None, primary_key='_id'):
        """ Init a filter expression

        :param force_filter: A filtering condition that will be forcefully applied to the query.
            A dict, which will become ANDed to every request.
        :param scalar_operators: A dict of additional operators to recognize.
            A mapping: {'operator': callable(*operands) -> dict}. See class body for examples.
        :type scalar_operators: dict[str, callable]
        :param primary_key: The field name a bare string or number refers to
        """
        super(MongoFilter, self).__init__()

        # Config
        self.primary_key = primary_key
        self._extra_scalar_ops = {k.lower().strip(): v for k, v in (scalar_operators or {}).items()}

        # On input
        self.expressions = None

        # Extra configuraion: force_filter
        if force_filter is None:
            self.force_filter = None
        elif isinstance(force_filter, dict):
            self.force_filter = force_filter
            # just for the sake of validation
            self._parse_criteria(self.force_filter)
        else:
            raise ValueError(force_filter)

    # Operators, by their lowercase name
    _operators_scalar = {
        # operator => lambda *operands
        '=':  lambda val: {'$eq': val},
        '!=': lambda val: {'$ne': val},
        '<>': lambda val: {'$ne': val},
        '<':  lambda val: {'$lt': val},
        '<=': lambda val: {'$lte': val},
        '>':  lambda val: {'$gt': val},
        '>=': lambda val: {'$gte': val},
        # An empty search string does not filter anything
        'like': lambda val: {'$regex': val, '$options': 'i'} if val else {},
        'in': lambda val: {'$in': parse_list_value(val)},
        'not in': lambda val: {'$nin': parse_list_value(val)},
        'between': lambda low, high: {'$gte': low, '$lte': high},
    }

    # Number of operands for operators that need more than one
    _operator_arity = {
        'between': 2,
    }

    # Keys of a boolean node
    _boolean_operators = {
        'and': '$and',
        'or': '$or',
    }

    # These classes implement compilation
    # You can override them, if necessary
    _COLUMN_EXPRESSION_CLS = FilterColumnExpression
    _LITERAL_EXPRESSION_CLS = FilterLiteralExpression
    _BOOLEAN_EXPRESSION_CLS = FilterBooleanExpression
    _LIST_EXPRESSION_CLS = FilterListExpression

    def input(self, criteria):
        # Primary key shortcut
        if isinstance(criteria, (str, int, float, ObjectId)) and not isinstance(criteria, bool):
            criteria = {self.primary_key: criteria}

        # Process input
        super(MongoFilter, self).input(criteria)
        self.expressions = self._parse_criteria(criteria)

        # Apply force_filter
        if self.force_filter:
            self.expressions.extend(self._parse_criteria(self.force_filter))

        return self

    def is_input_empty(self):
        return not self.expressions

    def _parse_criteria(self, criteria):
        """ Parse criteria and return a list of parsed objects.

        Parsing and compilation are two logical phases: subclass and change either one.

        :type criteria: dict | list | None
        :rtype: list[FilterExpressionBase]
        """
        # None
        if not criteria:
            return []

        # A list of criteria
        if isinstance(criteria, (list, tuple)):
            return [self._LIST_EXPRESSION_CLS([self._parse_criteria(c) for c in criteria])]

        # Validation base
        if not isinstance(criteria, dict):
            raise InvalidQueryError('Filter criteria must be one of: null, object, list')

        # Boolean node: other keys are ignored
        if any(key in criteria for key in self._boolean_operators):
            return [self._parse_boolean_operator(self._boolean_operators[key], criteria[key])
                    for key in self._boolean_operators
                    if key in criteria]

        # A dict of { field: condition }
        expressions = []
        for field_name, condition in criteria.items():
            # Equality, which is not an operator
            if not self._is_operator_condition(condition):
                expressions.append(self._LITERAL_EXPRESSION_CLS(field_name, condition))
                continue

            # One pair, or multiple pairs: [op, value] | [[op, value], ...]
            pairs = condition if _is_array(condition[0]) else [condition]
            expressions.append(self._COLUMN_EXPRESSION_CLS(
                field_name,
                [parsed
                 for parsed in (self._parse_pair(field_name, pair) for pair in pairs)
                 if parsed is not None]
            ))

        # Done
        return expressions

    def _parse_boolean_operator(self, op, criteria):
        """ Used in _parse_criteria() to handle the `and` and `or` keys

            Example:
                Input: { or: [ {}, ... ] }
                -> _parse_boolean_operator('$or', [ {}, ... ])
        """
        # A single criteria is the same as a list of one
        if not isinstance(criteria, (list, tuple)):
            criteria = [criteria]
        return self._BOOLEAN_EXPRESSION_CLS(op, [self._parse_criteria(c) for c in criteria])

    @staticmethod
    def _is_operator_condition(condition):
        """ Does the condition use operators? Otherwise, it's a literal """
        return _is_array(condition) \
               and len(condition) > 0 \
               and isinstance(condition[0], (str, list, tuple))

    def _parse_pair(self, field_name, pair):
        """ Parse one [operator, operand, ...] pair

            :return: (operator, lambda, operands), or None if the pair has to be ignored
        """
        if not _is_array(pair) or not pair or not isinstance(pair[0], str):
            logger.warning('Filter: ignoring malformed condition %r for field `%s`', pair, field_name)
            return None

        operator_str = pair[0].lower().strip()
        operands = list(pair[1:])

        try:
            operator_lambda = self._lookup_operator(operator_str)
        except KeyError:
            logger.warning('Filter: unsupported operator "%s" for field `%s`; ignored', operator_str, field_name)
            return None

        # Pad the operands
        if operator_str in self._operators_scalar:
            arity = self._operator_arity.get(operator_str, 1)
            operands = (operands + [None] * arity)[:arity]

        return operator_str, operator_lambda, operands

    def _lookup_operator(self, operator_str):
        """ Lookup an operator in `self`, or extra operators

        :raises: KeyError
        """
        return self._operators_scalar.get(operator_str) or self._extra_scalar_ops[operator_str]

    def compile_statement(self):
        """ Create a native predicate

        :return: a predicate; or a list of predicates, when the input was a list of criteria
        :rtype: dict | list[dict]
        """
        return compile_criteria(self.expressions or [])

    def compile_predicate(self):
        """ Create a predicate usable with find(), count_documents(), and `$match`

            A list of criteria is combined with `$or`

            :rtype: dict
        """
        predicate = self.compile_statement()
        if isinstance(predicate, list):
            return {'$or': predicate} if predicate else {}
        return predicate

    def compile_stages(self):
        predicate = self.compile_predicate()

        # An empty $match stage is useless
        if not predicate:
            return []
        return [{'$match': predicate}]
