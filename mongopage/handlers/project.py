"""
### Project Operation
Projection corresponds to the `$project` stage of a MongoDB pipeline, or the `projection` argument of find().

Projection is inclusion-only: name the fields you want to get.

Example:

```python
crud.get_list(where, project='name, age')
```

#### Syntax

* `'*'`, or `None`: load all fields. No projection is applied.
* String syntax: field names separated with commas. Both `,` and the full-width `，` are understood:

    ```python
    project='id, name，age'  # -> {id: 1, name: 1, age: 1}
    ```

* List syntax: a list (or a set) of field names:

    ```python
    project=['id', 'name']  # -> {id: 1, name: 1}
    ```

* Object syntax: a native projection. It is used as-is:

    ```python
    project={'id': 1, 'name': 1}
    ```
"""

import re

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


#: The projection that loads every field
ALL_FIELDS = '*'


class MongoProject(MongoQueryHandlerBase):
    """ Projection: compiles a ProjectionSpec into a native projection document

        * None, '*': all fields
        * 'a, b, c': a comma-separated string
        * ['a', 'b']: a list of field names
        * {'a': 1, 'b': 1}: a native projection
    """

    query_object_section_name = 'project'

    _FIELDS_DELIMITERS = re.compile(r'[,，]')

    def __init__(self, default_projection=None):
        """ Init projection

        :param default_projection: The projection to use when no input was provided.
            Same syntax as the input. Default: all fields.
        """
        super(MongoProject, self).__init__()

        # Settings
        self.default_projection = default_projection

        # On input
        #: The native projection; `None` for all fields
        self.projection = None

    def input(self, projection):
        super(MongoProject, self).input(projection)

        # Default
        if projection is None:
            projection = self.default_projection

        self.projection = self._input(projection)
        return self

    def _input(self, projection):
        # All fields
        if projection is None or projection == ALL_FIELDS:
            return None

        # String syntax
        if isinstance(projection, str):
            names = (name.strip() for name in self._FIELDS_DELIMITERS.split(projection))
            return {name: 1 for name in names if name} or None

        # List syntax
        if isinstance(projection, (list, tuple, set, frozenset)):
            return dict.fromkeys(projection, 1) or None

        # Native projection
        if isinstance(projection, dict):
            return projection or None

        raise InvalidQueryError('Projection must be one of: "*", string, list, object; {} provided'
                                .format(type(projection)))

    def is_input_empty(self):
        return not self.projection

    def compile_statement(self):
        """ Get the native projection

            :rtype: dict | None
        """
        return self.projection

    def compile_stages(self):
        if not self.projection:
            return []
        return [{'$project': self.projection}]

    def get_final_input_value(self):
        return ALL_FIELDS if self.projection is None else list(self.projection)
