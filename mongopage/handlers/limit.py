"""
### Page Operation
Pagination corresponds to the `$skip` and `$limit` stages of a MongoDB pipeline.

The Page operation consists of optional parts:

* `page`: the page number, starting with 1
* `size`: the number of items per page. It is capped by the `max_items` setting (1000),
    and `0` or nothing means `default_items` (20).
* `previous_total`: the total the client has seen when it loaded the previous page.
    See "Drift correction" below.

Example:

```python
crud.get_list(where, page=3, size=100, count=True, previous_total=2000)
```

#### Drift correction
Listings often receive new items while the user is scrolling through them.
New items appear on top, shift everything else down, and the next page would repeat some of the items
the user has already seen.

To compensate for that, the client sends back the `total` it has received with the first page.
When the current total has grown by `k` rows, the window moves forward by `k` rows.
This is a heuristic: it assumes that rows are inserted ahead of the current page, and that deletions are rare.
"""

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


def page_count(total, size):
    """ The number of pages: ceil(total / size) """
    return -(-total // size)


class PageCursor:
    """ The position of a client in a paginated listing

        :param page: Page number, >= 1
        :param size: Page size
        :param count: Whether the total has to be computed
        :param previous_total: The total the client has seen previously; 0 if unknown
    """

    __slots__ = ('page', 'size', 'count', 'previous_total')

    def __init__(self, page=1, size=None, count=True, previous_total=0):
        self.page = page
        self.size = size
        self.count = count
        self.previous_total = previous_total

    def __repr__(self):
        return 'PageCursor(page={}, size={}, count={}, previous_total={})'.format(
            self.page, self.size, self.count, self.previous_total)

    def __eq__(self, other):
        return isinstance(other, PageCursor) and \
               all(getattr(self, k) == getattr(other, k) for k in self.__slots__)

    def normalized(self, max_items, default_items):
        """ Get a copy with all values coerced and clamped

            :raises InvalidQueryError: non-numeric values
        """
        page = _to_int(self.page, 'page')
        size = _to_int(self.size, 'size')
        previous_total = _to_int(self.previous_total, 'previous_total')

        # Size: [1, max_items]; the default when empty
        if not size:
            size = default_items
        size = max(1, min(size, max_items))

        return PageCursor(
            page=max(1, page or 1),
            size=size,
            count=bool(self.count),
            previous_total=max(0, previous_total or 0),
        )


class MongoLimit(MongoQueryHandlerBase):
    """ Pagination: skip & limit, with drift correction

        Handles several keys:
        * 'page': None, or int
        * 'size': None, or int
        * 'previous_total': None, or int
        It also looks at 'count', but doesn't take it: that's MongoCount's section
    """

    query_object_section_name = 'limit'

    def __init__(self, max_items=1000, default_items=20):
        """ Init a limit

        :param max_items: The maximum number of items that can be loaded with this query.
            The user can never go any higher than that, and this value is forced onto every query.
        :param default_items: The page size to use when none was given
        """
        super(MongoLimit, self).__init__()

        # Config
        self.max_items = max_items
        self.default_items = default_items
        assert self.max_items > 0
        assert self.default_items > 0

        # On input
        #: The normalized PageCursor, or None when there's no pagination
        self.cursor = None

        #: Drift correction offset, set by set_total()
        self.drift = 0

    def input_prepare_query_object(self, query_object):
        """ Alter Query Object

        Unlike other handlers, this one receives several values.
        MongoQuery only supports one key per handler.
        Solution: pack them into a PageCursor
        """
        if any(k in query_object for k in ('page', 'size', 'previous_total')):
            query_object['limit'] = PageCursor(
                page=query_object.pop('page', None),
                size=query_object.pop('size', None),
                count=query_object.get('count', False),
                previous_total=query_object.pop('previous_total', None),
            )
        return query_object

    def input(self, cursor=None):
        super(MongoLimit, self).input(cursor)

        # Adapt
        if isinstance(cursor, dict):
            cursor = PageCursor(**cursor)

        # Validate
        if not isinstance(cursor, (PageCursor, NoneType)):
            raise InvalidQueryError('Page must be either a PageCursor, an object, or null')

        # Done
        self.cursor = None if cursor is None else cursor.normalized(self.max_items, self.default_items)
        return self

    def is_input_empty(self):
        return self.cursor is None

    @property
    def has_limit(self):
        """ Check thether there's a limit on this handler """
        return self.cursor is not None

    def set_total(self, total):
        """ Let the handler know the current total, and apply drift correction

            :param total: The current number of rows
            :return: The drift offset
            :rtype: int
        """
        if self.cursor and self.cursor.page > 1 and self.cursor.previous_total > 0:
            self.drift = max(0, total - self.cursor.previous_total)
        else:
            self.drift = 0
        return self.drift

    @property
    def skip(self):
        """ The number of rows to skip, drift correction included """
        if self.cursor is None:
            return 0
        return (self.cursor.page - 1) * self.cursor.size + self.drift

    @property
    def limit(self):
        """ The number of rows to load; None for unlimited """
        return None if self.cursor is None else self.cursor.size

    def compile_statement(self):
        return dict(skip=self.skip, limit=self.limit)

    def compile_stages(self):
        if self.cursor is None:
            return []

        stages = []
        if self.skip:
            stages.append({'$skip': self.skip})
        stages.append({'$limit': self.limit})
        return stages

    def get_final_input_value(self):
        if self.cursor is None:
            return None
        return dict(page=self.cursor.page, size=self.cursor.size, previous_total=self.cursor.previous_total)


def _to_int(value, name):
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidQueryError('{} must be an integer; {!r} provided'.format(name, value))


NoneType = type(None)
