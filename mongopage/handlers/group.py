"""
### Group Operation
Grouping corresponds to the `_id` of a `$group` stage.

By default, the [Aggregate Operation](#aggregate-operation) gives statistical results over all rows.

For instance, if you've asked for `{ avg_age: { $avg: 'age' } }`, you'll get the average age of all users.

Oftentimes this is not enough, and you'll want statistics calculated over groups of items.
This is what the Group Operation does: specifies which field to use as the "group" indicator.

#### Example: calculate the number of users of every specific age.

```python
MongoQuery().query(
    aggregate={
        'count': {'$sum': 1},  # The count
    },
    group=['age'],  # The discriminator
)
```

The group value ends up in the `_id` field of every row.

#### Syntax
Same as the [Sort Operation](#sort-operation): a list of field names, or a whitespace-separated string.
Directions are ignored.

With one field, `_id` is the value of the field.
With several fields, `_id` is an object: `{ field: value, ... }`.
"""

from .sort import MongoSort


class MongoGroup(MongoSort):
    """ MongoDB-style grouping

        It has the same syntax as MongoSort, so we just reuse the code.

        See :cls:MongoSort
    """

    query_object_section_name = 'group'

    def __init__(self):
        super(MongoSort, self).__init__()  # yes, call the base; not the parent

        # On input
        #: OderedDict() of a group spec: {key: +1|-1}
        self.group_spec = None

    def input(self, group_spec):
        super(MongoSort, self).input(group_spec)  # call base; not the parent
        self.group_spec = self._input(group_spec)
        return self

    def is_input_empty(self):
        return not self.group_spec

    @property
    def field_names(self):
        return list(self.group_spec or ())

    def compile_statement(self):
        """ Get the `_id` expression for the `$group` stage

            :rtype: None | str | dict
        """
        names = self.field_names
        if not names:
            return None
        elif len(names) == 1:
            return '$' + names[0]
        else:
            return {name: '$' + name for name in names}

    def compile_stages(self):
        # MongoAggregate builds the $group stage
        return []

    def get_final_input_value(self):
        return self.field_names
