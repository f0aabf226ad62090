def ids(docs, key='_id'):
    """ Get the list of primary keys from a list of documents """
    return [doc[key] for doc in docs]


class TestPredicatesMixin:
    """ unittest mixin that will help testing compiled predicates """

    def assertPredicate(self, mongofilter, expected):
        """ Compare a compiled predicate, and make sure that compilation is repeatable """
        self.assertEqual(mongofilter.compile_predicate(), expected)
        self.assertEqual(mongofilter.compile_predicate(), expected)

    def assertMatches(self, collection, predicate, expected_ids):
        """ Run the predicate against a collection, compare the set of primary keys """
        self.assertEqual(set(ids(collection.find(predicate))), set(expected_ids))
