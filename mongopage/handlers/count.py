"""
### Count Operation
Counting corresponds to the `$count` stage of a MongoDB pipeline, or to count_documents().

When `count` is on, the total number of rows is computed along with the page,
and the result gets `total` and `page_count`.

Example:

```python
crud.get_list(where, page=1, size=20, count=True)
```

The count ignores projection, sorting, and pagination: only `unwind`, `join`, and `filter` matter.
"""

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


class MongoCount(MongoQueryHandlerBase):
    """ Count the total number of rows

        Just give it:
        * count=True
    """

    query_object_section_name = 'count'

    #: The name of the field `$count` puts the number into
    COUNT_FIELD = 'total'

    def __init__(self):
        super(MongoCount, self).__init__()

        # On input
        self.count = None

    def input(self, count=None):
        super(MongoCount, self).input(count)
        if not isinstance(count, (int, bool, NoneType)):
            raise InvalidQueryError('Count must be either true or false. Or at least a 1, or a 0')

        # Done
        self.count = bool(count)
        return self

    def is_input_empty(self):
        return not self.count

    def compile_statement(self):
        return {'$count': self.COUNT_FIELD}

    def compile_stages(self):
        return [self.compile_statement()]

    def alter_pipeline(self, pipeline):
        # Only the count pipeline gets this stage; see MongoQuery.end_count()
        return pipeline

    def get_count(self, results):
        """ Get the number from the results of a counting pipeline

            `$count` produces no rows at all when nothing matched
        """
        for row in results:
            return row[self.COUNT_FIELD]
        return 0


NoneType = type(None)
