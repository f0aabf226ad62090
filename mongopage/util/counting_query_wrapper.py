import logging

from pymongo.collection import Collection

from ..handlers.limit import page_count

logger = logging.getLogger(__name__)


class ResultPage:
    """ A page of results, with pagination metadata

        `total` and `page_count` are only available when counting was requested.
    """

    __slots__ = ('page', 'size', 'total', 'page_count', 'items')

    def __init__(self, page, size, items, total=None):
        self.page = page
        self.size = size
        self.items = items
        self.total = total
        self.page_count = None if total is None else page_count(total, size)

    def __repr__(self):
        return 'ResultPage(page={}, size={}, total={}, items=<{} items>)'.format(
            self.page, self.size, self.total, len(self.items))

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)

    def as_dict(self):
        """ Get the page as a dict: ready to be returned from an API """
        ret = dict(page=self.page, size=self.size)
        if self.total is not None:
            ret['total'] = self.total
            ret['page_count'] = self.page_count
        ret['items'] = self.items
        return ret


class CountingQuery:
    """ `MongoQuery` wrapper that can count the rows while returning results

        MongoDB can't count and fetch in a single request: this class makes the counting request first,
        corrects the page offset for drift (see MongoLimit), and then fetches the page.

        Plain queries are counted with `count_documents()` and fetched with `find()`;
        queries with an unwind or a join are both counted and fetched with aggregation pipelines,
        so the count is made in terms of array elements or joined rows.

        Example:

            ```python
            mq = MongoQuery('user').query(filter={'age': ['>=', 18]}, page=2, size=10, count=True)
            qc = CountingQuery(mq, db['user'])

            # Get the count
            qc.count  # -> 127

            # Get the results
            list(qc)

            # Get both
            qc.page().as_dict()
            ```
    """
    __slots__ = ('_mongoquery', '_collection', '_count', '_results')

    def __init__(self, mongoquery, collection: Collection):
        #: The query
        self._mongoquery = mongoquery

        #: The collection to run the query against
        self._collection = collection

        # The total count ; `None` if the query has not yet been counted
        self._count = None

        # The list of results ; `None` if the query has not yet been executed
        self._results = None

    @property
    def count(self) -> int:
        """ Get the total count

            If the query has not been counted yet, it will be at this point.
        """
        if self._count is None:
            self._count = self._get_query_count()
        return self._count

    def __iter__(self):
        """ Get Query results """
        return iter(self.all())

    def all(self) -> list:
        """ Get all results as a list """
        # Make sure the Query is executed
        if self._results is None:
            self._results = self._query_execute()
        return self._results

    def page(self) -> ResultPage:
        """ Get the results as a page with metadata """
        items = self.all()
        handler_limit = self._mongoquery.handler_limit
        counting = not self._mongoquery.handler_count.is_input_empty()

        if handler_limit.has_limit:
            page, size = handler_limit.cursor.page, handler_limit.cursor.size
        else:
            page, size = 1, max(1, len(items))

        return ResultPage(page, size, items,
                          total=self.count if counting else None)

    # region Counting logic

    def _get_query_count(self) -> int:
        """ Count the rows with count_documents(), or with a pipeline when that's the only way """
        mq = self._mongoquery

        if mq.requires_pipeline():
            return mq.handler_count.get_count(self._collection.aggregate(mq.end_count()))
        else:
            return self._collection.count_documents(mq.end_count_filter())

    def _query_execute(self) -> list:
        """ Count (if requested), then fetch the page """
        mq = self._mongoquery

        # Drift correction needs the current total before the offset is known
        if not mq.handler_count.is_input_empty():
            drift = mq.handler_limit.set_total(self.count)
            if drift:
                logger.debug('%r: drift correction of %d rows', mq, drift)

        # Fetch
        if mq.requires_pipeline():
            cursor = self._collection.aggregate(mq.end())
        else:
            cursor = self._collection.find(**mq.end_find())

        # Post-process
        return mq.process_results(list(cursor))

    # endregion
