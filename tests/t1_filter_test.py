import unittest

from bson import ObjectId

from mongopage.handlers import MongoFilter
from mongopage.handlers.filter import parse_list_value
from mongopage.exc import InvalidQueryError

from . import models
from .util import TestPredicatesMixin


def compile_filter(criteria, **settings):
    return MongoFilter(**settings).input(criteria).compile_predicate()


class FilterTest(TestPredicatesMixin, unittest.TestCase):
    """ Test MongoFilter: compilation """

    longMessage = True
    maxDiff = None

    def test_empty(self):
        self.assertEqual(compile_filter(None), {})
        self.assertEqual(compile_filter({}), {})
        self.assertEqual(compile_filter([]), {})
        self.assertEqual(MongoFilter().input(None).compile_stages(), [])

        # === Test: input() can be called only once
        with self.assertRaises(RuntimeError):
            MongoFilter().input(None).input(None)

    def test_literal(self):
        self.assertEqual(compile_filter({'a': 1, 'b': 'x'}), {'a': 1, 'b': 'x'})
        # Native conditions are stored as-is
        self.assertEqual(compile_filter({'a': {'$gte': 1}}), {'a': {'$gte': 1}})
        # A list which does not start with an operator is compared as a whole
        self.assertEqual(compile_filter({'tags': [1, 2]}), {'tags': [1, 2]})
        self.assertEqual(compile_filter({'tags': []}), {'tags': []})
        self.assertEqual(compile_filter({'a': None}), {'a': None})

    def test_operators(self):
        ops = {
            '=': {'$eq': 1},
            '!=': {'$ne': 1},
            '<>': {'$ne': 1},
            '<': {'$lt': 1},
            '<=': {'$lte': 1},
            '>': {'$gt': 1},
            '>=': {'$gte': 1},
        }
        for op, expected in ops.items():
            self.assertEqual(compile_filter({'a': [op, 1]}), {'a': expected}, op)

        # Operators are case-insensitive, and trimmed
        self.assertEqual(compile_filter({'a': [' IN ', [1, 2]]}), {'a': {'$in': [1, 2]}})
        self.assertEqual(compile_filter({'a': ['Not In', '1']}), {'a': {'$nin': [1]}})

        # Compound conditions on one field
        self.assertEqual(compile_filter({'a': [['>', 1], ['<', 5]]}),
                         {'a': {'$gt': 1, '$lt': 5}})

        # Several fields
        self.assertEqual(compile_filter({'a': ['>', 1], 'b': 2}),
                         {'a': {'$gt': 1}, 'b': 2})

    def test_between(self):
        self.assertEqual(compile_filter({'price': ['between', 10, 50]}),
                         {'price': {'$gte': 10, '$lte': 50}})
        self.assertEqual(compile_filter({'price': ['BETWEEN', 10, 50]}),
                         {'price': {'$gte': 10, '$lte': 50}})

        # Inside a compound condition
        self.assertEqual(compile_filter({'price': [['between', 1, 5], ['!=', 3]]}),
                         {'price': {'$gte': 1, '$lte': 5, '$ne': 3}})

    def test_like(self):
        self.assertEqual(compile_filter({'name': ['like', 'jo']}),
                         {'name': {'$regex': 'jo', '$options': 'i'}})

        # Empty search strings do not filter anything
        self.assertEqual(compile_filter({'name': ['like', '']}), {})
        self.assertEqual(compile_filter({'name': ['like', None]}), {})
        self.assertEqual(compile_filter({'name': ['like']}), {})
        self.assertEqual(compile_filter({'name': ['like', ''], 'age': 18}), {'age': 18})

    def test_in(self):
        self.assertEqual(compile_filter({'status': ['in', '1,2,3']}), {'status': {'$in': [1, 2, 3]}})
        self.assertEqual(compile_filter({'status': ['in', [1, 2, 3]]}), {'status': {'$in': [1, 2, 3]}})
        self.assertEqual(compile_filter({'status': ['not in', '1,2']}), {'status': {'$nin': [1, 2]}})

        # parse_list_value()
        self.assertEqual(parse_list_value('1,2,3'), [1, 2, 3])
        self.assertEqual(parse_list_value('a，b, c'), ['a', 'b', 'c'])
        self.assertEqual(parse_list_value('1, ,2,'), [1, 2])
        self.assertEqual(parse_list_value('-1,2.5,x1'), [-1, 2.5, 'x1'])
        self.assertEqual(parse_list_value(('a', 'b')), ['a', 'b'])
        self.assertEqual(parse_list_value(5), [5])
        self.assertEqual(parse_list_value(None), [])
        self.assertEqual(parse_list_value(''), [])

    def test_unknown_operator(self):
        """ An unknown operator does not filter anything """
        with self.assertLogs('mongopage.handlers.filter', 'WARNING') as logs:
            self.assertEqual(compile_filter({'a': ['~=', 1]}), {})
        self.assertIn('~=', logs.output[0])

        with self.assertLogs('mongopage.handlers.filter', 'WARNING'):
            self.assertEqual(compile_filter({'a': ['~=', 1], 'b': 2}), {'b': 2})

        # Only the unknown pair is dropped
        with self.assertLogs('mongopage.handlers.filter', 'WARNING'):
            self.assertEqual(compile_filter({'a': [['~=', 1], ['>', 2]]}), {'a': {'$gt': 2}})

        # Malformed pairs
        with self.assertLogs('mongopage.handlers.filter', 'WARNING'):
            self.assertEqual(compile_filter({'a': [['>', 1], 5]}), {'a': {'$gt': 1}})

    def test_boolean(self):
        # and: always a list
        self.assertEqual(compile_filter({'and': {'a': 1, 'b': 2}}),
                         {'$and': [{'a': 1, 'b': 2}]})
        self.assertEqual(compile_filter({'and': [{'a': 1}, {'b': 2}]}),
                         {'$and': [{'a': 1}, {'b': 2}]})

        # or: a single criteria, or a list
        self.assertEqual(compile_filter({'or': {'a': 1}}),
                         {'$or': [{'a': 1}]})
        self.assertEqual(compile_filter({'or': [{'a': 1}, {'b': ['>', 2]}]}),
                         {'$or': [{'a': 1}, {'b': {'$gt': 2}}]})

        # Both; other keys are ignored
        self.assertEqual(compile_filter({'and': {'a': 1}, 'or': [{'b': 1}, {'c': 1}], 'ignored': 5}),
                         {'$and': [{'a': 1}], '$or': [{'b': 1}, {'c': 1}]})

        # Nested
        self.assertEqual(compile_filter({'or': [{'and': {'a': 1}}, {'b': 1}]}),
                         {'$or': [{'$and': [{'a': 1}]}, {'b': 1}]})

        # A list inside `or` joins it
        self.assertEqual(compile_filter({'or': [[{'a': 1}, {'b': 1}]]}),
                         {'$or': [{'a': 1}, {'b': 1}]})

        # Empty
        self.assertEqual(compile_filter({'or': []}), {})

    def test_list(self):
        """ A list of criteria is combined with `$or` """
        f = MongoFilter().input([{'a': 1}, {'b': ['<', 2]}])
        self.assertEqual(f.compile_statement(), [{'a': 1}, {'b': {'$lt': 2}}])
        self.assertEqual(f.compile_predicate(), {'$or': [{'a': 1}, {'b': {'$lt': 2}}]})
        self.assertEqual(f.compile_stages(), [{'$match': {'$or': [{'a': 1}, {'b': {'$lt': 2}}]}}])

    def test_idempotence(self):
        criteria = {'a': ['in', '1,2'], 'or': [{'b': ['between', 1, 2]}, {'c': ['like', 'x']}]}
        self.assertEqual(compile_filter(criteria), compile_filter(criteria))
        self.assertPredicate(MongoFilter().input(criteria), compile_filter(criteria))

    def test_primary_key(self):
        oid = ObjectId()
        self.assertEqual(compile_filter('abc'), {'_id': 'abc'})
        self.assertEqual(compile_filter(5), {'_id': 5})
        self.assertEqual(compile_filter(0), {'_id': 0})
        self.assertEqual(compile_filter(oid), {'_id': oid})
        self.assertEqual(compile_filter('abc', primary_key='uid'), {'uid': 'abc'})

        # Booleans are not primary keys
        with self.assertRaises(InvalidQueryError):
            compile_filter(True)

    def test_force_filter(self):
        force = dict(force_filter={'deleted': ['!=', True]})
        self.assertEqual(compile_filter(None, **force), {'deleted': {'$ne': True}})
        self.assertEqual(compile_filter({'a': 1}, **force), {'a': 1, 'deleted': {'$ne': True}})
        self.assertEqual(compile_filter([{'a': 1}, {'b': 1}], **force),
                         {'$or': [{'a': 1}, {'b': 1}], 'deleted': {'$ne': True}})

        # Same field: both conditions apply
        self.assertEqual(compile_filter({'deleted': False}, **force),
                         {'$and': [{'deleted': False}, {'deleted': {'$ne': True}}]})

        # Validation
        with self.assertRaises(ValueError):
            MongoFilter(force_filter='deleted')

    def test_scalar_operators(self):
        f = lambda criteria: compile_filter(criteria, scalar_operators={
            'exists': lambda v: {'$exists': bool(v)},
            'startswith': lambda v: {'$regex': '^' + v},
        })
        self.assertEqual(f({'a': ['exists', 1]}), {'a': {'$exists': True}})
        self.assertEqual(f({'a': ['StartsWith', 'x']}), {'a': {'$regex': '^x'}})
        self.assertEqual(f({'a': ['=', 1]}), {'a': {'$eq': 1}})


class FilterQueryTest(TestPredicatesMixin, unittest.TestCase):
    """ Test MongoFilter: run the predicates against a database """

    @classmethod
    def setUpClass(cls):
        cls.db = models.get_empty_db()
        cls.db.product.insert_many([
            dict(_id=1, price=5, name='Apple', status=1),
            dict(_id=2, price=10, name='Banana', status=2),
            dict(_id=3, price=30, name='cherry', status=3),
            dict(_id=4, price=50, name='Date', status=4),
            dict(_id=5, price=60, name='apricot', status=1),
        ])

    def test_between(self):
        """ Both bounds are inclusive """
        self.assertMatches(self.db.product, compile_filter({'price': ['between', 10, 50]}), {2, 3, 4})

    def test_in(self):
        self.assertMatches(self.db.product, compile_filter({'status': ['in', '1,2,3']}), {1, 2, 3, 5})
        self.assertMatches(self.db.product, compile_filter({'status': ['not in', '1，2']}), {3, 4})

    def test_like(self):
        self.assertMatches(self.db.product, compile_filter({'name': ['like', 'ap']}), {1, 5})
        self.assertMatches(self.db.product, compile_filter({'name': ['like', '']}), {1, 2, 3, 4, 5})

    def test_or(self):
        self.assertMatches(self.db.product,
                           compile_filter({'or': [{'price': ['<', 10]}, {'status': 4}]}),
                           {1, 4})
        self.assertMatches(self.db.product,
                           compile_filter([{'price': ['>', 50]}, {'name': 'Banana'}]),
                           {2, 5})

    def test_unknown_operator(self):
        """ Fail-open: an unknown operator gives back everything """
        with self.assertLogs('mongopage.handlers.filter', 'WARNING'):
            predicate = compile_filter({'price': ['costs', 10]})
        self.assertMatches(self.db.product, predicate, {1, 2, 3, 4, 5})
