class BaseMongoPageException(Exception):
    pass


class InvalidQueryError(BaseMongoPageException):
    """ Invalid input provided by the User """

    def __init__(self, err: str):
        super(InvalidQueryError, self).__init__('Query object error: {err}'.format(err=err))


class DisabledError(InvalidQueryError):
    """ The feature is disabled """


class MongoConnectionError(BaseMongoPageException):
    """ The connection handle was used before it was connected """
