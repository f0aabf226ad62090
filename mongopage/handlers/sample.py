"""
### Sample Operation
Sampling corresponds to the `$sample` stage of a MongoDB pipeline: pick random documents.

Example:

```python
crud.rand({'status': 1}, project='title', size=3)
```

The size is capped by the `max_items` setting.
"""

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


class MongoSample(MongoQueryHandlerBase):
    """ Random sampling

        * None: no sampling
        * int: the number of documents to pick
    """

    query_object_section_name = 'sample'

    def __init__(self, max_items=1000):
        super(MongoSample, self).__init__()

        # Config
        self.max_items = max_items

        # On input
        self.size = None

    def input(self, size):
        super(MongoSample, self).input(size)

        if size is None:
            self.size = None
            return self

        try:
            size = int(size)
        except (TypeError, ValueError):
            raise InvalidQueryError('Sample size must be an integer; {!r} provided'.format(size))

        self.size = max(1, min(size, self.max_items))
        return self

    def is_input_empty(self):
        return self.size is None

    def compile_statement(self):
        return {'$sample': {'size': self.size}}

    def compile_stages(self):
        if self.size is None:
            return []
        return [self.compile_statement()]
