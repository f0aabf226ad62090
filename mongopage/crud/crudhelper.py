"""
MongoPage is designed to help with data selection for the APIs.
To ease the pain of implementing CRUD for all of your collections,
MongoPage comes with a CRUD helper that exposes the Query Object capabilities:
paginated listings, joins, array unwinding, statistics, random picks, and simple writes.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Union

from pymongo.database import Database
from pymongo.errors import PyMongoError

from mongopage import exc
from mongopage.query import MongoQuery
from mongopage.util import CountingQuery, ResultPage
from mongopage.handlers.limit import page_count

logger = logging.getLogger(__name__)

#: "Where": a filter spec, or a primary key value
Where = Union[Mapping, list, str, int, float, None]


class CrudHelper:
    """ Crud helper: an object that helps implement CRUD operations for a collection:

        * Read: paginated listings, with drift correction
        * Statistics: count, sum, min, max, distinct values, grouped sums and counts
        * Create, Update, Delete: plain writes, with the same `where` syntax

        Source: [mongopage/crud/crudhelper.py](mongopage/crud/crudhelper.py)

        This object is supposed to be initialized only once;
        don't do it for every query, keep it somewhere in your service:

        ```python
        from mongopage import CrudHelper, MongoQuerySettingsDict

        class OrderService:
            def __init__(self, db):
                self.crud = CrudHelper(
                    # The database and the collection to work with
                    db, 'order',
                    # Settings for MongoQuery
                    **MongoQuerySettingsDict(
                        force_filter={'deleted': ['!=', True]},
                    )
                )
        ```

        Every `where` argument accepts a filter spec (see MongoFilter),
        or a primary key value: `crud.get_one('5f3e...')`.

        The following methods are available:
    """

    # The class to use for MongoQuery
    _MONGOQUERY_CLS = MongoQuery
    # The class to use for counting queries
    _COUNTING_QUERY_CLS = CountingQuery

    def __init__(self, database: Database, collection_name: str, **handler_settings):
        """ Init CRUD helper

        :param database: The database to work with
        :param collection_name: The collection to work with
        :param handler_settings: Settings for the MongoQuery used to make queries
        :raises KeyError: invalid settings
        """
        self.database = database
        self.collection_name = collection_name
        self.handler_settings = handler_settings

        # Validate the settings right away
        mq = self._MONGOQUERY_CLS(collection_name, handler_settings)
        self.max_items = mq.handler_limit.max_items

    @property
    def collection(self):
        """ The collection handle """
        return self.database[self.collection_name]

    def query_collection(self, query_obj: Optional[Mapping] = None) -> MongoQuery:
        """ Make a MongoQuery using the provided Query Object

            :param query_obj: The Query Object to use
            :raises exc.InvalidQueryError: There is an error in the Query Object
            :raises exc.DisabledError: A feature is disabled; likely, due to a configuration issue. See handler_settings.
        """
        # Validate
        if not isinstance(query_obj, (Mapping, NoneType)):
            raise exc.InvalidQueryError('Query Object must be either an object, or null')

        # Query
        return self._MONGOQUERY_CLS(self.collection_name, self.handler_settings).query(**(query_obj or {}))

    def _aggregate(self, mq: MongoQuery) -> List[dict]:
        """ Run the pipeline of a MongoQuery """
        return mq.process_results(list(self.collection.aggregate(mq.end())))

    # region Paginated listings

    def get_list(self, where: Where = None, project=None, sort=None,
                 page=1, size=None, count=True, previous_total=0) -> ResultPage:
        """ Get a page of documents

            :param where: Filter spec
            :param project: Projection spec
            :param sort: Sort spec
            :param page: Page number, starting with 1
            :param size: Page size. Default: `default_items`; capped by `max_items`
            :param count: Count the total number of documents as well
            :param previous_total: The total the client has received with the previous page; used for drift correction
        """
        return self.get_page(dict(
            filter=where, project=project, sort=sort,
            page=page, size=size, count=count, previous_total=previous_total,
        ))

    def get_list_join(self, join, where: Where = None, project=None, sort=None,
                      page=1, size=None, count=True, previous_total=0) -> ResultPage:
        """ Get a page of documents, joined to documents from another collection

            The filter, the projection, and the sort may refer to joined fields.

            :param join: Join spec: {from, localField, foreignField, as, one}. See MongoJoin
        """
        return self.get_page(dict(
            join=join, filter=where, project=project, sort=sort,
            page=page, size=size, count=count, previous_total=previous_total,
        ))

    def get_list_by_array(self, arr_field: str, where: Where = None, project=None, sort=None,
                          page=1, size=None, count=True, previous_total=0) -> ResultPage:
        """ Get a page of array elements

            Every document is unwound into one document per element of `arr_field`;
            the filter, the count, and the pagination work with elements.

            :param arr_field: The array field to unwind
        """
        return self.get_page(dict(
            unwind=arr_field, filter=where, project=project, sort=sort,
            page=page, size=size, count=count, previous_total=previous_total,
        ))

    def get_page(self, query_obj: Mapping) -> ResultPage:
        """ Run a Query Object, get a page of results """
        mq = self.query_collection(query_obj)
        return self._COUNTING_QUERY_CLS(mq, self.collection).page()

    # endregion

    # region Unpaginated reads

    def get_all_big(self, where: Where = None, project=None, sort=None, size=None) -> List[dict]:
        """ Get all documents, page by page

            Use it when the result set is larger than a single request can bring:
            the documents are counted, and then fetched page by page, `size` at a time.

            :param size: Page size. Default, and the upper limit: `max_items`
        """
        size = self._size_or_max(size)
        total = self.count(where)

        ret = []
        for page in range(1, page_count(total, size) + 1):
            ret.extend(self.get_list(where, project, sort, page=page, size=size, count=False).items)
        return ret

    def get_all(self, where: Where = None, project=None, sort=None, size=None) -> List[dict]:
        """ Get documents with a single request, up to `size` of them

            :param size: The maximum number of documents. Default, and the upper limit: `max_items`
        """
        return self.get_list(where, project, sort, page=1, size=self._size_or_max(size), count=False).items

    def get_all_by_array(self, arr_field: str, where: Where = None, project=None, sort=None,
                         size=None) -> List[dict]:
        """ Get array elements with a single request, up to `size` of them

            :param arr_field: The array field to unwind
        """
        return self.get_list_by_array(arr_field, where, project, sort,
                                      page=1, size=self._size_or_max(size), count=False).items

    def get_one(self, where: Where = None, project=None, sort=None) -> Optional[dict]:
        """ Get a single document, or None """
        items = self.get_list(where, project, sort, page=1, size=1, count=False).items
        return items[0] if items else None

    def _size_or_max(self, size):
        if not size:
            return self.max_items
        return max(1, min(int(size), self.max_items))

    # endregion

    # region Statistics

    def count(self, where: Where = None) -> int:
        """ Count documents """
        mq = self.query_collection(dict(filter=where))
        return self.collection.count_documents(mq.end_count_filter())

    def distinct(self, where: Where, field: str) -> list:
        """ Get the list of distinct values of a field """
        rows = self._aggregate(self.query_collection(dict(
            filter=where,
            aggregate={'values': {'$addToSet': field}},
        )))
        if rows and rows[0].get('values'):
            return rows[0]['values']
        return []

    def distinct_count(self, where: Where, field: str) -> int:
        """ Count distinct values of a field """
        return len(self.distinct(where, field))

    def sum(self, where: Where, field: str, strict=False):
        """ Sum the values of a field

            :param strict: How to report an empty set.
                With `strict=False`, both "no rows" and "the sum is zero" give you a `0`.
                With `strict=True`, "no rows" gives you a `None`.
        """
        return self._aggregate_one(where, '$sum', field, strict)

    def min(self, where: Where, field: str, strict=False):
        """ The smallest value of a field

            :param strict: `True` to get `None` when there are no rows. Otherwise, it's `0`
        """
        return self._aggregate_one(where, '$min', field, strict)

    def max(self, where: Where, field: str, strict=False):
        """ The largest value of a field

            :param strict: `True` to get `None` when there are no rows. Otherwise, it's `0`
        """
        return self._aggregate_one(where, '$max', field, strict)

    def _aggregate_one(self, where: Where, operator: str, field: str, strict: bool):
        """ Compute a single aggregate value over all matching rows """
        rows = self._aggregate(self.query_collection(dict(
            filter=where,
            aggregate={'value': {operator: field}, 'n': {'$sum': 1}},
        )))

        # Strict mode: tell "no rows" from zero
        # Some servers give no rows for an empty $group, some give a row with n=0
        if strict:
            if not rows or not rows[0].get('n'):
                return None
            return rows[0].get('value')

        # Legacy mode: anything falsy is a zero
        if rows and rows[0].get('value'):
            return rows[0]['value']
        return 0

    def group_sum(self, where: Where, group_field: str, fields: Union[str, Iterable[str]]) -> List[dict]:
        """ Sum fields for every group

            :param group_field: The field to group by
            :param fields: Field name, or a list of field names to sum up
            :return: [ {group_field: value, field1: sum, field2: sum, ...}, ... ]
        """
        if isinstance(fields, str):
            fields = [fields]
        # Field names can't be $group labels: "_id" is the key, and dots are not allowed.
        # Use generated labels, then map them back.
        labels = {'f{}'.format(i): field for i, field in enumerate(fields)}

        rows = self._aggregate(self.query_collection(dict(
            filter=where,
            group=[group_field],
            aggregate={label: {'$sum': field} for label, field in labels.items()},
        )))

        return [dict([(group_field, row['_id'])] + [(field, row.get(label)) for label, field in labels.items()])
                for row in rows]

    def group_count(self, where: Where, group_field: str) -> dict:
        """ Count documents in every group

            :return: { "<group_field>_<value>": count }
        """
        rows = self._aggregate(self.query_collection(dict(
            filter=where,
            group=[group_field],
            aggregate={'total': {'$sum': 1}},
        )))

        return {'{}_{}'.format(group_field, row['_id']): row['total']
                for row in rows}

    def rand(self, where: Where = None, project=None, size=1) -> Union[dict, List[dict], None]:
        """ Pick random documents

            :param size: The number of documents; capped by `max_items`
            :return: A single document (or None) when `size` is 1; a list otherwise
        """
        if size is None:
            size = 1
        mq = self.query_collection(dict(filter=where, project=project, sample=size))
        rows = self._aggregate(mq)

        if mq.handler_sample.size == 1:
            return rows[0] if rows else None
        return rows

    # endregion

    # region Collections

    def is_exist_collection(self) -> bool:
        """ Check whether the collection exists

            Driver errors are logged, and reported as `False`
        """
        try:
            names = self.database.list_collection_names(filter={'name': self.collection_name})
        except PyMongoError as e:
            logger.error('Failed to check whether collection "%s" exists: %s', self.collection_name, e)
            return False
        return self.collection_name in names

    def create_collection(self) -> bool:
        """ Create the collection

            Driver errors (e.g. the collection already exists) are logged, and reported as `False`
        """
        try:
            self.database.create_collection(self.collection_name)
        except PyMongoError as e:
            logger.error('Failed to create collection "%s": code=%s|%s',
                         self.collection_name, getattr(e, 'code', None), e)
            return False

        logger.info('Created collection "%s"', self.collection_name)
        return True

    # endregion

    # region Writes

    def _where(self, where: Where) -> dict:
        """ Compile the `where` of a write operation """
        return self.query_collection(dict(filter=where)).end_count_filter()

    def insert(self, doc: dict) -> Any:
        """ Insert a document

            :return: The primary key of the new document
        """
        return self.collection.insert_one(doc).inserted_id

    def insert_batch(self, docs: Iterable[dict], size=1000) -> int:
        """ Insert many documents, `size` at a time

            :return: The number of inserted documents
        """
        docs = list(docs)
        total = 0
        for offset in range(0, len(docs), size):
            total += len(self.collection.insert_many(docs[offset:offset + size]).inserted_ids)
        return total

    def edit(self, where: Where, data: dict) -> int:
        """ Update fields of matching documents

            :return: The number of modified documents
        """
        return self.collection.update_many(self._where(where), {'$set': data}).modified_count

    def inc(self, where: Where, field: str, val=1) -> int:
        """ Increment a field of matching documents; atomically

            :return: The number of modified documents
        """
        return self.collection.update_many(self._where(where), {'$inc': {field: val}}).modified_count

    def mul(self, where: Where, field: str, val=1) -> int:
        """ Multiply a field of matching documents; atomically

            :return: The number of modified documents
        """
        return self.collection.update_many(self._where(where), {'$mul': {field: val}}).modified_count

    def delete(self, where: Where) -> int:
        """ Delete matching documents

            :return: The number of deleted documents
        """
        return self.collection.delete_many(self._where(where)).deleted_count

    def clear(self) -> int:
        """ Delete all documents """
        return self.collection.delete_many({}).deleted_count

    # endregion


NoneType = type(None)
