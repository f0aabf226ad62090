import logging

from . import handlers
from .exc import InvalidQueryError
from .util import MongoQuerySettingsHandler

logger = logging.getLogger(__name__)


class MongoQuery:
    """ MongoDB queries from a Query Object """

    def __init__(self, collection_name=None, handler_settings=None):
        """ Init a query compiler

        :param collection_name: Name of the collection this query is made for.
            Used for error messages only: the query never touches the database.
        :param handler_settings: Settings for Query Object handlers.
            These are just plain kwargs names for every handler object's __init__ method.
            Address the relevant documentation.
            Note that you don't have to specify which object receives which kwarg:
            the `MongoQuerySettingsHandler` object does that automatically.

            To disable a handler, give its name mapped to a `False`.
            Example:

                join_enabled=False

            The list of all settings:
                # filter
                    force_filter=None
                    scalar_operators=None
                    primary_key='_id'
                # project
                    default_projection=None
                # limit
                    max_items=1000
                    default_items=20
                # sample
                    max_items=1000
                # every handler
                    <handler_name>_enabled=True
        :type handler_settings: dict | MongoQuerySettingsDict | None
        """
        self.collection_name = collection_name

        # Settings
        self._handler_settings = MongoQuerySettingsHandler(dict(handler_settings or {}))

        # Initialized handlers
        self._init_query_object_handlers()

    def query(self, **query_object):
        """ Build a MongoDB query from an object

        :param filter: Filter criteria
        :param project: Projection spec
        :param sort: Sorting spec
        :param join: Join to other collections
        :param unwind: Array field to unwind
        :param aggregate: Compute statistics
        :param group: Grouping spec
        :param sample: The number of random documents
        :param page: Page number
        :param size: Page size
        :param previous_total: The total the client has seen previously
        :param count: Count the total number of rows as well
        :raises InvalidQueryError: unknown Query Object operations provided (extra keys)
        :raises InvalidQueryError: syntax error for any of the Query Object sections
        :raises DisabledError: input provided for a disabled handler
        :rtype: MongoQuery
        """
        # Prepare Query Object
        for handler_name, handler in self._handlers():
            query_object = handler.input_prepare_query_object(query_object)

        # Check if Query Object keys are all right
        invalid_keys = set(query_object.keys()) - self.HANDLER_NAMES
        if invalid_keys:
            raise InvalidQueryError('Unknown Query Object operations: {}'.format(', '.join(sorted(invalid_keys))))

        # Bind every handler with ourselves
        for handler_name, handler in self._handlers():
            handler.with_mongoquery(self)

        # Process every field with its method
        # Every handler should be invoked because they may have defaults even when no input was provided
        for handler_name, handler in self._handlers():
            # Query Object value for this handler
            input_value = query_object.get(handler_name, None)

            # Disabled handlers exception
            # But only test that if there actually was any input
            if input_value is not None:
                self._raise_if_handler_is_not_enabled(handler_name)

            # Use the handler
            # Run it even when it does not have any input
            handler.input(input_value)

        # Done
        return self

    def end(self):
        """ Get the aggregation pipeline that fetches the results

        :rtype: list[dict]
        """
        pipeline = []
        for handler_name, handler in self._handlers():
            pipeline = handler.alter_pipeline(pipeline)

        logger.debug('%r pipeline: %r', self, pipeline)
        return pipeline

    def end_count(self):
        """ Get the aggregation pipeline that counts the rows

        Only the handlers that change the set of rows matter: projection, sorting, and pagination are ignored.

        :rtype: list[dict]
        """
        pipeline = []
        for handler in (self.handler_unwind, self.handler_join, self.handler_filter):
            pipeline = handler.alter_pipeline(pipeline)
        pipeline.extend(self.handler_count.compile_stages())

        logger.debug('%r count pipeline: %r', self, pipeline)
        return pipeline

    def end_find(self):
        """ Get the arguments for Collection.find()

        Only available when the query does not need a pipeline: see `requires_pipeline()`

        :rtype: dict
        """
        assert not self.requires_pipeline(), 'This query can only be run as a pipeline'

        kwargs = dict(
            filter=self.handler_filter.compile_predicate(),
            projection=self.handler_project.compile_statement(),
        )
        if not self.handler_sort.is_input_empty():
            kwargs['sort'] = self.handler_sort.compile_cursor_sort()
        if self.handler_limit.has_limit:
            kwargs['skip'] = self.handler_limit.skip
            kwargs['limit'] = self.handler_limit.limit
        return kwargs

    def end_count_filter(self):
        """ Get the predicate for Collection.count_documents() """
        return self.handler_filter.compile_predicate()

    # Extra features

    def requires_pipeline(self):
        """ Test whether the query can only be run with aggregate()

        Plain queries are run with find(), but unwind, join, aggregate, group, and sample
        need an aggregation pipeline.
        """
        return any(not handler.is_input_empty()
                   for handler in (self.handler_unwind, self.handler_join,
                                   self.handler_aggregate, self.handler_group,
                                   self.handler_sample))

    def result_is_scalar(self):
        """ Test whether the result is a single row of computed values, not documents """
        return not self.handler_aggregate.is_input_empty() and self.handler_group.is_input_empty()

    def process_results(self, docs):
        """ Post-process the documents fetched with end() or end_find()

        :type docs: list[dict]
        :rtype: list[dict]
        """
        return self.handler_join.process_results(docs)

    def get_final_query_object(self):
        """ Get the final Query Object dict, after all handlers have processed it """
        return {
            name: handler.get_final_input_value()
            for name, handler in self._handlers()
            if not handler.is_input_empty()
        }

    def __repr__(self):
        return 'MongoQuery({})'.format(self.collection_name or '')

    # region Query Object handlers

    # This section initializes every Query Object handler, one per method.
    # Doing it this way enables you to override the way they are initialized, and use a custom query class with
    # custom settings.

    _QO_HANDLER_PROJECT = handlers.MongoProject
    _QO_HANDLER_SORT = handlers.MongoSort
    _QO_HANDLER_GROUP = handlers.MongoGroup
    _QO_HANDLER_JOIN = handlers.MongoJoin
    _QO_HANDLER_UNWIND = handlers.MongoUnwind
    _QO_HANDLER_FILTER = handlers.MongoFilter
    _QO_HANDLER_AGGREGATE = handlers.MongoAggregate
    _QO_HANDLER_SAMPLE = handlers.MongoSample
    _QO_HANDLER_LIMIT = handlers.MongoLimit
    _QO_HANDLER_COUNT = handlers.MongoCount

    HANDLER_NAMES = frozenset(('project',
                               'sort',
                               'group',
                               'join',
                               'unwind',
                               'filter',
                               'aggregate',
                               'sample',
                               'limit',
                               'count'))
    HANDLER_ATTR_NAMES = frozenset('handler_'+name
                                   for name in HANDLER_NAMES)

    def _handlers(self):
        """ Get the list of all (handler_name, handler) """
        return (
            # Note that the ordering of these handlers is the order of pipeline stages!
            # 1. 'unwind' and 'join' before 'filter'
            #    Because the filter may refer to array elements and joined fields,
            #    and the count has to be made in terms of those.
            # 2. 'aggregate' after 'filter'
            #    Because statistics are computed over the filtered rows.
            #    It makes the $group stage, and takes its key from 'group'.
            # 3. 'sample' before 'project'
            #    Because it picks whole documents
            # 4. 'limit' after 'sort'
            ('unwind', self.handler_unwind),
            ('join', self.handler_join),
            ('filter', self.handler_filter),
            ('group', self.handler_group),
            ('aggregate', self.handler_aggregate),
            ('sample', self.handler_sample),
            ('project', self.handler_project),
            ('sort', self.handler_sort),
            ('limit', self.handler_limit),
            ('count', self.handler_count),
        )

    # for IDE completion
    handler_project = None  # type: mongopage.handlers.MongoProject
    handler_sort = None  # type: mongopage.handlers.MongoSort
    handler_group = None  # type: mongopage.handlers.MongoGroup
    handler_join = None  # type: mongopage.handlers.MongoJoin
    handler_unwind = None  # type: mongopage.handlers.MongoUnwind
    handler_filter = None  # type: mongopage.handlers.MongoFilter
    handler_aggregate = None  # type: mongopage.handlers.MongoAggregate
    handler_sample = None  # type: mongopage.handlers.MongoSample
    handler_limit = None  # type: mongopage.handlers.MongoLimit
    handler_count = None  # type: mongopage.handlers.MongoCount

    def _init_query_object_handlers(self):
        """ Initialize every Query Object handler """
        for name in self.HANDLER_NAMES:
            # Every handler: name, attr, clas
            handler_attr_name = 'handler_' + name
            handler_cls_attr_name = '_QO_HANDLER_' + name.upper()
            handler_cls = getattr(self, handler_cls_attr_name)

            # Use _init_handler()
            setattr(self, handler_attr_name,
                    self._init_handler(name, handler_cls)
                    )

        # Check settings
        self._handler_settings.raise_if_invalid_handler_settings(self)

    def _init_handler(self, handler_name, handler_cls):
        """ Init a handler, and load its settings """
        handler_settings = self._handler_settings.get_settings(handler_name, handler_cls)
        return handler_cls(**handler_settings)

    # endregion

    def _raise_if_handler_is_not_enabled(self, handler_name):
        """ Raise an error if a handler is not enabled. """
        self._handler_settings.raise_if_not_handler_enabled(self.collection_name, handler_name)
