"""
### Sort Operation

Sorting corresponds to the `$sort` stage of a MongoDB pipeline, or to cursor.sort().

An example of a sort operation would look like this:

```python
crud.get_list(where, sort={'createdAt': 'desc', 'name': 'asc'})
```

#### Syntax

* Object syntax.

    Field names mapped to a direction: `'asc'` for ascending, anything else for descending.
    Directions are case-insensitive. Numbers are used as-is.

    ```python
    { 'a': 'asc', 'b': 'desc', 'c': 'bogus', 'd': 1 }  # -> a ASC, b DESC, c DESC, d ASC
    ```

* Array syntax.

    List of `(field, direction)` pairs, or of field names optionally suffixed by the sort direction:
    `-` for DESC, `+` for ASC. The default is `+`.

    ```python
    [ 'a+', 'b-', 'c' ]  # -> a ASC, b DESC, c ASC
    ```

* String syntax

    List of fields, with optional `+` / `-`, separated by whitespace.

    ```python
    'a+ b- c'
    ```
"""

from collections import OrderedDict

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


#: The token for ascending order. Everything else is descending.
ASCENDING = 'asc'


def sort_direction(direction):
    """ Convert a direction token into a native +1/-1

        Only the ascending token is positive: anything else sorts descending.
        Numbers are passed through.
    """
    if isinstance(direction, (int, float)) and not isinstance(direction, bool):
        return direction
    if isinstance(direction, str) and direction.lower().strip() == ASCENDING:
        return +1
    return -1


class MongoSort(MongoQueryHandlerBase):
    """ MongoDB sorting

        * None: no sorting
        * { a: 'asc', b: 'desc' }
        * [ 'a+', 'b-', 'c' ]  - array of strings '<column>[<+|->]'. default direction = +1
        * [ ('a', 'asc'), ('b', -1) ]
    """

    query_object_section_name = 'sort'

    def __init__(self):
        super(MongoSort, self).__init__()

        # On input
        #: OderedDict() of a sort spec: {key: +1|-1}
        self.sort_spec = None

    def _input(self, spec):
        """ Reusable method: fits both MongoSort and MongoGroup """

        # Empty
        if not spec:
            return OrderedDict()

        # String syntax
        if isinstance(spec, str):
            # Split by whitespace and convert to a list
            spec = spec.split()

        # List
        if isinstance(spec, (list, tuple)):
            items = []
            for v in spec:
                if isinstance(v, str):
                    v = v.strip()
                    # Empty tokens, e.g. from "a, , b"
                    if not v:
                        continue
                    # "column[+-]"
                    if v in {'+', '-'}:
                        raise InvalidQueryError('{} item "{}" has no field name'
                                                .format(self.query_object_section_name, v))
                    if v[-1] in {'+', '-'}:
                        items.append((v[:-1], -1 if v[-1] == '-' else +1))
                    else:
                        items.append((v, +1))
                elif isinstance(v, (list, tuple)) and len(v) == 2:
                    items.append((v[0], sort_direction(v[1])))
                else:
                    raise InvalidQueryError('{} list items must be strings or (field, direction) pairs'
                                            .format(self.query_object_section_name))
            return OrderedDict(items)

        # Dict
        if isinstance(spec, dict):
            return OrderedDict((field, sort_direction(direction))
                               for field, direction in spec.items())

        raise InvalidQueryError('{name} must be either a list, a string, or an object; {type} provided.'
                                .format(name=self.query_object_section_name, type=type(spec)))

    def input(self, sort_spec):
        super(MongoSort, self).input(sort_spec)
        self.sort_spec = self._input(sort_spec)
        return self

    def merge(self, sort_spec):
        self.sort_spec.update(self._input(sort_spec))
        return self

    def is_input_empty(self):
        return not self.sort_spec

    def compile_statement(self):
        """ Get the native sort document

            :rtype: dict
        """
        return dict(self.sort_spec)

    def compile_cursor_sort(self):
        """ Get the sort spec in the form that cursor.sort() wants: a list of (key, direction)

            :rtype: list[tuple[str, int]]
        """
        return list(self.sort_spec.items())

    def compile_stages(self):
        if not self.sort_spec:
            return []
        return [{'$sort': self.compile_statement()}]

    def get_final_input_value(self):
        return [f'{name}{"-" if d == -1 else ""}'
                for name, d in self.sort_spec.items()]
