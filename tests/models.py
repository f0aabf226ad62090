import mongomock


def content_samples():
    """ Generate content samples: { collection name: [documents] } """
    return {
        'u': [
            dict(_id=1, name='a', age=18, tags=['1', 'a']),
            dict(_id=2, name='b', age=18, tags=['2', 'a', 'b']),
            dict(_id=3, name='c', age=16, tags=['3', 'a', 'b', 'c']),
        ],
        'a': [
            dict(_id=10, uid=1, title='10', theme='sci', rating=5),
            dict(_id=11, uid=1, title='11', theme='sci', rating=5.5),
            dict(_id=12, uid=1, title='12', theme='art', rating=6),
            dict(_id=20, uid=2, title='20', theme='art', rating=4.5),
            dict(_id=21, uid=2, title='21', theme='sci', rating=4),
            dict(_id=30, uid=3, title='30', theme=None),
        ],
        'c': [
            dict(_id=100, aid=10, uid=1, text='10-a'),
            dict(_id=101, aid=10, uid=2, text='10-b'),
            dict(_id=102, aid=10, uid=3, text='10-c'),
            dict(_id=103, aid=11, uid=1, text='11-a'),
            dict(_id=104, aid=11, uid=2, text='11-b'),
            dict(_id=105, aid=12, uid=1, text='12-a'),
            dict(_id=106, aid=20, uid=1, text='20-a-ONE'),
            dict(_id=107, aid=20, uid=1, text='20-a-TWO'),
            dict(_id=108, aid=21, uid=1, text='21-a'),
        ],
    }


def content_samples_feed(n):
    """ Generate a feed of `n` posts: the newest has the largest `n` """
    return [dict(_id=i, n=i, title='post-{}'.format(i)) for i in range(1, n + 1)]


def get_empty_db():
    """ Get an empty in-memory database """
    client = mongomock.MongoClient()
    client.drop_database('mongopage_test')
    return client['mongopage_test']


def get_working_db_for_tests():
    """ Get an in-memory database, filled with samples """
    db = get_empty_db()
    for collection_name, docs in content_samples().items():
        db[collection_name].insert_many(docs)
    return db
