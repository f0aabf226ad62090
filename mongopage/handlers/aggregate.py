"""
### Aggregate Operation
Aggregation corresponds to the `$group` stage of a MongoDB pipeline.

Sometimes the caller wouldn't need the data itself, but rather some statistics on that data: the smallest value,
the largest value, the average value, the sum total of all values.

Example:
```python
MongoQuery().query(
    filter={'status': 1},
    aggregate={
        # The youngest and the oldest
        'min_age': {'$min': 'age'},
        'max_age': {'$max': 'age'},

        # SUM(1) for every user produces the total number of users
        'number_of_users': {'$sum': 1},

        # Unique values
        'cities': {'$addToSet': 'city'},
    },
)
```

#### Syntax
The syntax is an object that declares custom field names to be used for keeping results:

    aggregate: { computed-field-name: <expression> }

The *expression* can be:

* Field name: the value of the field in the first row of the group.

    This is only useful when combined with the [Group Operation](#group-operation).

* Aggregation functions:

    * `{ $min: operand }` - smallest value
    * `{ $max: operand }` - largest value
    * `{ $avg: operand }` - average value
    * `{ $sum: operand }` - sum of values
    * `{ $addToSet: operand }` - the list of distinct values

    The *operand* can be:

    * Field name: to apply the aggregation function to a field
    * A number (only supported by `$sum` operator): `{ $sum: 1 }` counts the rows

Note that aggregation often makes sense only when used together with the [Group Operation](#group-operation).
"""

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


# region Aggregate Expression Classes

class AggregateExpressionBase:
    """ Represents a computed field with a label """

    __slots__ = ('label',)

    def __init__(self, label):
        self.label = label

    def compile(self):
        """ Compile this aggregate expression into an accumulator: {label: {$op: ...}} """
        raise NotImplementedError()


class AggregateLabelledColumn(AggregateExpressionBase):
    """ Represents a labeled field

        The following case is handled here:
        { labeled_column: 'age' }
    """

    __slots__ = ('column_name',)

    def __init__(self, label, column_name):
        super(AggregateLabelledColumn, self).__init__(label)
        self.column_name = column_name

    def __repr__(self):
        return '{} -> {}'.format(self.column_name, self.label)

    def compile(self):
        return {self.label: {'$first': '$' + self.column_name}}


class AggregateColumnOperator(AggregateExpressionBase):
    """ Represents an aggregation operator applied to a field

        The following case is handled here:
        { minimal_age: { $min: 'age' }}
        operator=$min, column_name='age', label='minimal_age'
    """

    __slots__ = ('operator', 'column_name')

    def __init__(self, label, operator, column_name):
        super(AggregateColumnOperator, self).__init__(label)
        self.operator = operator
        self.column_name = column_name

    def __repr__(self):
        return '{} {}'.format(self.operator, self.column_name)

    def compile(self):
        return {self.label: {self.operator: '$' + self.column_name}}


class AggregateRowCount(AggregateExpressionBase):
    """ Represents a sum of a constant: counts the rows

        The following case is handled here:
        { count: { $sum: 1 }}
    """

    __slots__ = ('value',)

    def __init__(self, label, value):
        super(AggregateRowCount, self).__init__(label)
        self.value = value

    def __repr__(self):
        return 'COUNT({})'.format(self.value)

    def compile(self):
        return {self.label: {'$sum': self.value}}

# endregion


class MongoAggregate(MongoQueryHandlerBase):
    """ Aggregation handler

        You can choose a field name to be used, essentially, as a label, and assign an expression to it
        that's going to be computed.
        Syntax:

            { computed_field_name: aggregation-expression }

        The group key is taken from the MongoGroup handler of the same MongoQuery.
    """

    query_object_section_name = 'aggregate'

    #: Supported accumulators
    _operators = frozenset(('$min', '$max', '$avg', '$sum', '$addToSet'))

    def __init__(self):
        super(MongoAggregate, self).__init__()

        # On input
        self.agg_spec = None

    def input(self, agg_spec):
        super(MongoAggregate, self).input(agg_spec)

        # Validate
        if not agg_spec:
            agg_spec = {}
        if not isinstance(agg_spec, dict):
            raise InvalidQueryError('aggregate: argument must be an object')

        # Transform the input into { label: AggregateExpressionBase }
        self.agg_spec = self._parse_input(agg_spec)
        return self

    def is_input_empty(self):
        return not self.agg_spec

    # These classes implement compilation
    # You can override them, if necessary
    _LABELLED_COLUMN_CLS = AggregateLabelledColumn
    _COLUMN_OPERATOR_CLS = AggregateColumnOperator
    _ROW_COUNT_CLS = AggregateRowCount

    def _parse_input(self, input):
        agg_spec = {}
        for label, expression in input.items():
            # `_id` belongs to the group
            if label == '_id':
                raise InvalidQueryError('Aggregate: "_id" is reserved for the group key')

            # string: Column reference
            if isinstance(expression, str):
                agg_spec[label] = self._LABELLED_COLUMN_CLS(label, expression.lstrip('$'))
                continue

            # dict: { $op: operand }
            if not isinstance(expression, dict):
                raise InvalidQueryError('Aggregate: Expression for "{}" should be either a column name, or an object'
                                        .format(label))
            if len(expression) != 1:
                raise InvalidQueryError('Aggregate: expression for "{}" can only contain a single aggregation operator'
                                        .format(label))

            agg_operator, operand = next(iter(expression.items()))
            if agg_operator not in self._operators:
                raise InvalidQueryError('Aggregate: unsupported operator "{}"'.format(agg_operator))

            if isinstance(operand, (int, float)) and not isinstance(operand, bool) and agg_operator == '$sum':
                # special case for { $sum: 1 }
                agg_spec[label] = self._ROW_COUNT_CLS(label, operand)
            elif isinstance(operand, str):
                agg_spec[label] = self._COLUMN_OPERATOR_CLS(label, agg_operator, operand.lstrip('$'))
            else:
                raise InvalidQueryError('Aggregate: operand for "{}" should be a column name'.format(label))

        return agg_spec

    def _group_id(self):
        """ Get the `_id` of the `$group` stage from the group handler """
        if self.mongoquery is None:
            return None
        return self.mongoquery.handler_group.compile_statement()

    def compile_statement(self):
        """ Get the contents of the `$group` stage

            :rtype: dict
        """
        group = {'_id': self._group_id()}
        for agg in self.agg_spec.values():
            group.update(agg.compile())
        return group

    def compile_stages(self):
        # Group without aggregation still makes a stage: distinct group values
        has_group = self.mongoquery is not None and not self.mongoquery.handler_group.is_input_empty()
        if not self.agg_spec and not has_group:
            return []
        return [{'$group': self.compile_statement()}]

    # Extra features

    @property
    def projection(self):
        """ Get a projection-like dict from the aggregate handler

            It will describe all those additional keys that it is going to install on a query.
        """
        return {label: 1 for label in self.agg_spec.keys()}
