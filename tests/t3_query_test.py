import unittest

from mongopage import MongoQuery, MongoQuerySettingsDict
from mongopage.exc import InvalidQueryError, DisabledError


JOIN_AUTHOR = {'from': 'u', 'localField': 'uid', 'foreignField': '_id', 'as': 'author'}


class QueryTest(unittest.TestCase):
    """ Test MongoQuery """

    longMessage = True
    maxDiff = None

    def test_empty(self):
        mq = MongoQuery('a').query()
        self.assertEqual(mq.end(), [])
        self.assertEqual(mq.end_count(), [{'$count': 'total'}])
        self.assertEqual(mq.end_find(), dict(filter={}, projection=None))
        self.assertFalse(mq.requires_pipeline())
        self.assertEqual(mq.get_final_query_object(), {})

    def test_pipeline(self):
        """ Stages come in the right order """
        mq = MongoQuery('a').query(
            sort={'title': 'desc'},
            page=2, size=10,
            project='title, uid',
            filter={'uid': 1},
        )
        self.assertEqual(mq.end(), [
            {'$match': {'uid': 1}},
            {'$project': {'title': 1, 'uid': 1}},
            {'$sort': {'title': -1}},
            {'$skip': 10},
            {'$limit': 10},
        ])

        # The same, with find()
        self.assertFalse(mq.requires_pipeline())
        self.assertEqual(mq.end_find(), dict(
            filter={'uid': 1},
            projection={'title': 1, 'uid': 1},
            sort=[('title', -1)],
            skip=10,
            limit=10,
        ))

        # Final Query Object
        self.assertEqual(mq.get_final_query_object(), dict(
            filter={'uid': 1},
            project=['title', 'uid'],
            sort=['title-'],
            limit=dict(page=2, size=10, previous_total=0),
        ))

    def test_pipeline_unwind(self):
        mq = MongoQuery('u').query(unwind='tags', filter={'tags': 'a'}, sort={'name': 'asc'},
                                   page=1, size=5, count=True)
        self.assertTrue(mq.requires_pipeline())
        self.assertEqual(mq.end(), [
            {'$unwind': '$tags'},
            {'$match': {'tags': 'a'}},
            {'$sort': {'name': 1}},
            {'$limit': 5},
        ])

        # Counting: elements, not documents
        self.assertEqual(mq.end_count(), [
            {'$unwind': '$tags'},
            {'$match': {'tags': 'a'}},
            {'$count': 'total'},
        ])

        # find() is not possible
        with self.assertRaises(AssertionError):
            mq.end_find()

    def test_pipeline_join(self):
        mq = MongoQuery('a').query(join=JOIN_AUTHOR, filter={'author.name': 'a'}, project='title, author',
                                   sort={'title': 'asc'}, page=3, size=2, count=True)
        lookup = {'$lookup': JOIN_AUTHOR}
        self.assertEqual(mq.end(), [
            lookup,
            {'$match': {'author.name': 'a'}},
            {'$project': {'title': 1, 'author': 1}},
            {'$sort': {'title': 1}},
            {'$skip': 4},
            {'$limit': 2},
        ])
        self.assertEqual(mq.end_count(), [
            lookup,
            {'$match': {'author.name': 'a'}},
            {'$count': 'total'},
        ])

    def test_pipeline_sample(self):
        mq = MongoQuery('a').query(filter={'uid': 1}, project='title', sample=2)
        self.assertTrue(mq.requires_pipeline())
        self.assertEqual(mq.end(), [
            {'$match': {'uid': 1}},
            {'$sample': {'size': 2}},
            {'$project': {'title': 1}},
        ])

    def test_result_is_scalar(self):
        self.assertTrue(MongoQuery().query(aggregate={'n': {'$sum': 1}}).result_is_scalar())
        self.assertFalse(MongoQuery().query(aggregate={'n': {'$sum': 1}}, group='uid').result_is_scalar())
        self.assertFalse(MongoQuery().query(filter={'a': 1}).result_is_scalar())

    def test_invalid_query_object(self):
        with self.assertRaises(InvalidQueryError) as e:
            MongoQuery('a').query(filter={}, limit_=1, where={})
        self.assertIn('limit_, where', str(e.exception))

        # Messages are prefixed
        self.assertTrue(str(e.exception).startswith('Query object error:'))

    def test_disabled_handlers(self):
        mq = lambda: MongoQuery('a', dict(join_enabled=False, sample_enabled=False))

        # No input: fine
        mq().query(filter={'a': 1})

        # Input: error
        with self.assertRaises(DisabledError):
            mq().query(join=JOIN_AUTHOR)
        with self.assertRaises(DisabledError):
            mq().query(sample=1)

        # DisabledError is an InvalidQueryError
        with self.assertRaises(InvalidQueryError):
            mq().query(sample=1)

    def test_settings(self):
        # Settings are routed to every handler that wants them
        mq = MongoQuery('a', dict(max_items=50, default_items=5, primary_key='uid',
                                  force_filter={'deleted': False}, default_projection='title'))
        self.assertEqual(mq.handler_limit.max_items, 50)
        self.assertEqual(mq.handler_limit.default_items, 5)
        self.assertEqual(mq.handler_sample.max_items, 50)
        self.assertEqual(mq.handler_filter.primary_key, 'uid')

        mq.query(filter=1, page=1, size=100)
        self.assertEqual(mq.end(), [
            {'$match': {'uid': 1, 'deleted': False}},
            {'$project': {'title': 1}},
            {'$limit': 50},
        ])

        # Typos
        with self.assertRaises(KeyError) as e:
            MongoQuery('a', dict(max_itemz=5))
        self.assertIn('max_itemz', str(e.exception))
        with self.assertRaises(KeyError):
            MongoQuery('a', dict(joins_enabled=False))

    def test_settings_dict(self):
        # All defaults are valid settings
        settings = MongoQuerySettingsDict()
        self.assertEqual(settings['max_items'], 1000)
        self.assertEqual(settings['default_items'], 20)
        MongoQuery('a', settings)

        # and_more()
        more = settings.and_more(max_items=10, join_enabled=False)
        self.assertEqual(more['max_items'], 10)
        self.assertEqual(settings['max_items'], 1000)
        mq = MongoQuery('a', more)
        self.assertEqual(mq.handler_limit.max_items, 10)
        with self.assertRaises(DisabledError):
            mq.query(join=JOIN_AUTHOR)

        # pluck_from()
        plucked = MongoQuerySettingsDict.pluck_from(dict(max_items=7, unrelated=True))
        self.assertEqual(plucked['max_items'], 7)
        self.assertNotIn('unrelated', plucked)

        # Unknown keyword
        with self.assertRaises(TypeError):
            MongoQuerySettingsDict(max_itemz=5)

    def test_input_once(self):
        mq = MongoQuery('a').query(filter={'a': 1})
        with self.assertRaises(RuntimeError) as e:
            mq.query(filter={'a': 1})
        self.assertIn('Make a new MongoQuery', str(e.exception))

        self.assertFalse(hasattr(mq.handler_project, 'input_received'))
