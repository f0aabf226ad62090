import logging

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from .exc import MongoConnectionError

logger = logging.getLogger(__name__)


class MongoConnection:
    """ The connection to a MongoDB database: client lifecycle and collection handles

        The connection is an object that your application owns: create it once at startup,
        `connect()`, pass it (or the collections it gives) to whoever needs them, and `close()` it at shutdown.
        MongoPage never opens or closes connections by itself.

        Example:

            ```python
            conn = MongoConnection('mongodb://localhost:27017', 'shop').connect()

            orders = conn.crud('order', max_items=500)
            orders.get_list({'status': 1}, page=1, size=20)

            conn.close()
            ```

        It is also a context manager:

            ```python
            with MongoConnection(url, 'shop') as conn:
                ...
            ```
    """

    def __init__(self, url: str = 'mongodb://localhost:27017', database: str = None,
                 *, client_cls=MongoClient, **client_kwargs):
        """ Configure the connection; don't connect yet

        :param url: MongoDB connection string
        :param database: Database name. Default: the one from the connection string
        :param client_cls: The client class. Give `mongomock.MongoClient` in unit-tests
        :param client_kwargs: More arguments for the client, e.g. `serverSelectionTimeoutMS`
        """
        self._url = url
        self._database_name = database
        self._client_cls = client_cls
        self._client_kwargs = client_kwargs

        self._client = None
        self._database = None

    def connect(self) -> 'MongoConnection':
        """ Create and cache the client. Idempotent.

        :raises MongoConnectionError: the client could not be created
        """
        if self._client is not None:
            return self

        try:
            client = self._client_cls(self._url, **self._client_kwargs)
            if self._database_name:
                database = client[self._database_name]
            else:
                database = client.get_default_database()
        except PyMongoError as e:
            raise MongoConnectionError(str(e)) from e

        self._client, self._database = client, database
        logger.info('Connected to MongoDB, database "%s"', database.name)
        return self

    @property
    def client(self) -> MongoClient:
        """ The client; raises if not connected """
        if self._client is None:
            raise MongoConnectionError('Not connected; call connect() first')
        return self._client

    @property
    def database(self) -> Database:
        """ The database; raises if not connected """
        if self._database is None:
            raise MongoConnectionError('Not connected; call connect() first')
        return self._database

    def collection(self, name: str) -> Collection:
        """ Get a collection handle """
        return self.database[name]

    def crud(self, collection_name: str, **handler_settings):
        """ Get a CrudHelper for a collection of this database

        :param handler_settings: Settings for MongoQuery. See MongoQuerySettingsDict
        :rtype: mongopage.crud.CrudHelper
        """
        from .crud import CrudHelper
        return CrudHelper(self.database, collection_name, **handler_settings)

    def ping(self) -> bool:
        """ Ping the server; return True if reachable """
        if self._client is None:
            return False
        try:
            self._client.admin.command('ping')
        except PyMongoError as e:
            logger.warning('MongoDB ping failed: %s', e)
            return False
        return True

    def close(self):
        """ Close the client. The connection can be connect()ed again """
        if self._client is not None:
            self._client.close()
            self._client = None
            self._database = None

    def __enter__(self):
        return self.connect()

    def __exit__(self, *exc_info):
        self.close()

    def __repr__(self):
        return '{}({!r}, {!r}, connected={})'.format(
            self.__class__.__name__, self._url, self._database_name, self._client is not None)
