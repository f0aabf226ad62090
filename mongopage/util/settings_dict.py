from typing import *
from .inspect import pluck_kwargs_from


class MongoQuerySettingsDict(dict):
    """ MongoQuery settings container.

        Is only used for nice autocompletion and documentation purposes only! :)

        However... it may allow custom tweaks for configurations, if you override it.
        Here are some ideas:

        * Default values (e.g. smaller pages by default)
        * Configuration merging (e.g. inherit configuration from a base collection)

        The keyword settings in this object are just plain kwargs names
        for every handler object's __init__ method,
        which are fed to subclasses of MongoQueryHandlerBase by MongoQuerySettingsHandler.

        In addition to that, there are '<handler-name>_enabled' settings,
        that can enable or disable a handler.
    """

    def __init__(self,
                 # --- project
                 default_projection = None,
                 # --- filter
                 force_filter: dict = None,
                 scalar_operators: Mapping[str, Callable] = None,
                 primary_key: str = '_id',
                 # --- limit & sample
                 max_items: int = 1000,
                 # --- limit
                 default_items: int = 20,
                 # --- enabled_handlers?
                 aggregate_enabled: bool = True,
                 count_enabled: bool = True,
                 filter_enabled: bool = True,
                 group_enabled: bool = True,
                 join_enabled: bool = True,
                 unwind_enabled: bool = True,
                 limit_enabled: bool = True,
                 project_enabled: bool = True,
                 sample_enabled: bool = True,
                 sort_enabled: bool = True,
                 ):
        """ `MongoQuery` has a few settings that let you configure the way queries are made.

        These settings can be nicely kept in a MongoQuerySettingsDict
        and given to MongoQuery as the second argument, or to CrudHelper as keyword arguments.

        Example:
            ```python
            from mongopage import CrudHelper, MongoQuerySettingsDict

            crud = CrudHelper(db, 'order', **MongoQuerySettingsDict(
                # orders of deleted users are never shown
                force_filter={'deleted': ['!=', True]},
                # pages are smaller
                default_items=10,
            ))
            ```

        Args:
            default_projection (dict[str, int] | list[str] | str | None): (for: project)
                The default projection to use when no input was provided.
                When an input value is given, `default_projection` is not used at all: it overrides the default
                completely.
                Use `None` to return all fields by default.
            force_filter (dict): (for: filter)
                A filter that will be forced onto every request: it's ANDed with the user's criteria.
                Same syntax as the `filter` section of the Query Object.
            scalar_operators (dict[str, Callable]): (for: filter)
                A dict of additional operators: {'operator': callable(*operands) -> dict}.
                The callable receives the operands and returns a native condition for the field,
                e.g. `{'regex': lambda v: {'$regex': v}}`.
                A better way to declare global operators would be to subclass MongoFilter
                and declare the additional operators inside the class.
            primary_key (str): (for: filter)
                The name of the field that a bare string or number refers to: `'abc'` means `{primary_key: 'abc'}`.
            max_items (int): (for: limit, sample)
                The maximum number of items that can be loaded with this query.
                The user can never go any higher than that, and this value is forced onto every query.
            default_items (int): (for: limit)
                The page size to use when the user gives none, or a zero.

            aggregate_enabled (bool): Enable/disable the `aggregate` handler
            count_enabled (bool): Enable/disable the `count` handler
            filter_enabled (bool): Enable/disable the `filter` handler
            group_enabled (bool): Enable/disable the `group` handler
            join_enabled (bool): Enable/disable the `join` handler
            unwind_enabled (bool): Enable/disable the `unwind` handler
            limit_enabled (bool): Enable/disable the `limit` handler
            project_enabled (bool): Enable/disable the `project` handler
            sample_enabled (bool): Enable/disable the `sample` handler
            sort_enabled (bool): Enable/disable the `sort` handler
        """
        super().__init__()
        self.update({k: v
                     for k, v in locals().items()
                     if k not in {'__class__', 'self'}})

    def and_more(self, **settings):
        """ Copy the object and add more settings to it """
        return self.__class__(**{**self, **settings})

    @classmethod
    def pluck_from(cls, dict, skip=()):
        """ Initialize the class by plucking kwargs from a dictionary.

            This is useful when you have a dict with configuration for multiple classes, and you want to initialize
            this one by getting only the keys you need.

            Args:
                skip: List of key names to skip when copying. Sometimes it just does not make sense to copy all values.
        """
        kwargs = pluck_kwargs_from(dict,
                                   for_func=cls.__init__,
                                   skip=skip
                                   )
        return cls(**kwargs)
