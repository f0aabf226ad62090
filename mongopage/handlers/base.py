class MongoQueryHandlerBase:
    """ An implementation of a handler from MongoQuery

        Every subclass will handle a single field from the Query object
    """

    #: Name of the QueryObject section that this object is capable of handling
    query_object_section_name = None

    def __init__(self):
        """ Initialize the Query Object section handler.

        This method does *not* receive any input data just yet, with the purpose of having an
        object that can be configured with some interesting defaults right at init time.

        NOTE: Any arguments that subclasses declare with default values will be treated as handler settings!!
        See: MongoQuerySettingsHandler
        """
        #: The raw input value
        self.input_value = None

        #: MongoQuery bound to this object. It may remain uninitialized.
        self.mongoquery = None

    def with_mongoquery(self, mongoquery):
        """ Bind this object with a MongoQuery

            :type mongoquery: mongopage.query.MongoQuery
            """
        self.mongoquery = mongoquery
        return self

    def input_prepare_query_object(self, query_object):
        """ Modify the Query Object before it is processed.

        Sometimes a handler would need to alter it.
        Here's its chance.

        This method is called before any input(), or validation, or anything.

        :param query_object: dict
        """
        return query_object

    def input(self, qo_value):
        """ Get a section of the Query object.

        The purpose of this method is to receive the input, validate it, and store as a public
        property so that external tools may export its value.

        :param qo_value: the value of the Query object field it's handling
        :rtype: MongoQueryHandlerBase
        :raises InvalidQueryError
        """
        self.input_value = qo_value  # no copying. Try not to modify it.

        # Make sure that input() can only be used once
        self.input = self.__raise_input_not_reusable

        return self

    def is_input_empty(self):
        """ Test whether the input value was empty """
        return not self.input_value

    def __raise_input_not_reusable(self, *args, **kwargs):
        raise RuntimeError("You can't use the {}.input() method twice. "
                           "Make a new MongoQuery for every Query Object!"
                           .format(self.__class__.__name__))

    # These methods implement the logic of individual handlers
    # Note that not all methods are going to be implemented by subclasses!

    def compile_statement(self):
        """ Compile a native document: a predicate, a projection, a sort spec, etc.

        :rtype: dict | None
        """
        raise NotImplementedError()

    def compile_stages(self):
        """ Compile a list of aggregation pipeline stages

        :rtype: list[dict]
        """
        raise NotImplementedError()

    def alter_pipeline(self, pipeline):
        """ Append the stages of this handler to the given aggregation pipeline

        :param pipeline: The list of stages built so far
        :type pipeline: list[dict]
        :rtype: list[dict]
        """
        pipeline.extend(self.compile_stages())
        return pipeline

    def get_final_input_value(self):
        """ Get the final input of the handler """
        return self.input_value
