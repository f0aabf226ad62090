"""
### Join Operation
Joining corresponds to the `$lookup` stage of a MongoDB pipeline: it loads related documents
from another collection.

Example:

```python
crud.get_list_join(
    {'from': 'user', 'localField': 'user_id', 'foreignField': '_id', 'as': 'user'},
    where={'user.status': 1},
    page=1, size=20,
)
```

The join comes first in the pipeline, so the filter can reference joined fields.

#### Syntax

An object with the `$lookup` keys:

* `from`: the collection to join
* `localField`: the field of this collection
* `foreignField`: the field of the joined collection
* `as`: the name of the field to store the joined documents into
* `one`: optional, default `true`. Flatten the join into a one-to-one view:
    the joined array is replaced with its first element, or with an empty object if nothing was found.
    With `one: false`, the array is kept intact for one-to-many consumption.

Snake-case names also work: `from_`, `local_field`, `foreign_field`, `as_`, `flatten_to_one`.

A list of such objects makes several joins.
"""

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


class MongoJoinParams:
    """ Parameters of a single join

        :param from_collection: The collection to join
        :param local_field: Field in the current collection
        :param foreign_field: Field in the joined collection
        :param as_: Name of the field the joined documents are stored into
        :param one: Flatten the joined array to its first element
    """

    __slots__ = ('from_collection', 'local_field', 'foreign_field', 'as_', 'one')

    # Key aliases: first is the native $lookup name
    _KEYS = {
        'from_collection': ('from', 'from_', 'from_collection'),
        'local_field': ('localField', 'local_field'),
        'foreign_field': ('foreignField', 'foreign_field'),
        'as_': ('as', 'as_'),
    }
    _ONE_KEYS = ('one', 'flatten_to_one', 'flattenToOne')

    def __init__(self, from_collection, local_field, foreign_field, as_, one=True):
        self.from_collection = from_collection
        self.local_field = local_field
        self.foreign_field = foreign_field
        self.as_ = as_
        self.one = one

    @classmethod
    def from_dict(cls, params):
        """ Make join params from a dict

            :raises InvalidQueryError: missing keys
        """
        kwargs = {}
        for attr, keys in cls._KEYS.items():
            try:
                kwargs[attr] = next(params[k] for k in keys if k in params)
            except StopIteration:
                raise InvalidQueryError('Join: "{}" is required'.format(keys[0]))
            if not isinstance(kwargs[attr], str) or not kwargs[attr]:
                raise InvalidQueryError('Join: "{}" must be a non-empty string'.format(keys[0]))

        kwargs['one'] = bool(next((params[k] for k in cls._ONE_KEYS if k in params), True))
        return cls(**kwargs)

    def __repr__(self):
        return '{}({} {} -> {}.{} as {})'.format(
            self.__class__.__name__,
            'one' if self.one else 'many',
            self.local_field, self.from_collection, self.foreign_field, self.as_)

    def compile_statement(self):
        """ Get the `$lookup` stage """
        return {'$lookup': {
            'from': self.from_collection,
            'localField': self.local_field,
            'foreignField': self.foreign_field,
            'as': self.as_,
        }}

    def flatten(self, doc):
        """ Collapse the joined array to its first element, or {} """
        if self.as_ in doc:
            joined = doc[self.as_]
            doc[self.as_] = joined[0] if isinstance(joined, list) and joined else {}
        return doc


class MongoJoin(MongoQueryHandlerBase):
    """ Joining collections with `$lookup`

        * None: no joins
        * { from, localField, foreignField, as, one }: a join
        * [ {...}, {...} ]: several joins
    """

    query_object_section_name = 'join'

    _JOIN_PARAMS_CLS = MongoJoinParams

    def __init__(self):
        super(MongoJoin, self).__init__()

        # On input
        #: list[MongoJoinParams]
        self.joins = None

    def input(self, joins):
        super(MongoJoin, self).input(joins)
        self.joins = self._input(joins)
        return self

    def _input(self, joins):
        if not joins:
            return []

        if isinstance(joins, (dict, MongoJoinParams)):
            joins = [joins]

        if not isinstance(joins, (list, tuple)):
            raise InvalidQueryError('Join must be either an object, a list, or null; {} provided'
                                    .format(type(joins)))

        ret = []
        for params in joins:
            if isinstance(params, dict):
                params = self._JOIN_PARAMS_CLS.from_dict(params)
            elif not isinstance(params, MongoJoinParams):
                raise InvalidQueryError('Join: every item must be an object')
            ret.append(params)
        return ret

    def is_input_empty(self):
        return not self.joins

    def compile_stages(self):
        return [params.compile_statement() for params in self.joins]

    def process_results(self, docs):
        """ Post-process fetched documents: flatten one-to-one joins

            :type docs: list[dict]
            :rtype: list[dict]
        """
        flatten = [params for params in self.joins if params.one]
        if flatten:
            for doc in docs:
                for params in flatten:
                    params.flatten(doc)
        return docs

    def get_final_input_value(self):
        return [dict(params.compile_statement()['$lookup'], one=params.one)
                for params in self.joins]
