"""
### Unwind Operation
Unwinding corresponds to the `$unwind` stage of a MongoDB pipeline:
an array field is flattened into one document per element.

Example:

```python
crud.get_list_by_array('items', where={'items.status': 1}, page=1, size=20)
```

The unwind comes first in the pipeline, so the filter, the sorting, and the count work on elements:
pagination counts array elements, not parent documents.
"""

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


class MongoUnwind(MongoQueryHandlerBase):
    """ Unwind an array field

        * None: nothing
        * 'field': the name of the array field
    """

    query_object_section_name = 'unwind'

    def __init__(self):
        super(MongoUnwind, self).__init__()

        # On input
        self.field_name = None

    def input(self, field_name):
        super(MongoUnwind, self).input(field_name)

        if not isinstance(field_name, (str, NoneType)):
            raise InvalidQueryError('Unwind must be a field name; {} provided'.format(type(field_name)))

        # Tolerate the `$field` form
        self.field_name = field_name.lstrip('$') if field_name else None
        return self

    def is_input_empty(self):
        return not self.field_name

    def compile_statement(self):
        return {'$unwind': '$' + self.field_name}

    def compile_stages(self):
        if not self.field_name:
            return []
        return [self.compile_statement()]


NoneType = type(None)
