from .counting_query_wrapper import CountingQuery, ResultPage
from .mongoquery_settings_handler import MongoQuerySettingsHandler
from .settings_dict import MongoQuerySettingsDict
