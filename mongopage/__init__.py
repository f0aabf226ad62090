"""
MongoPage is a JSON query engine for MongoDB that does pagination right.

The main use case is the interaction with the UI:
every time the UI needs some *sorting*, *filtering*, *pagination*, or to join some
*related documents*, you won't have to write a single aggregation pipeline by hand!

The application describes the query with a Query Object,
which controls the way the result set is generated:

```python
crud = CrudHelper(db, 'user')

crud.get_list(
    {'age': ['>=', 18], 'city': ['in', 'Paris,Rome']},  # filter
    'name, age',  # projection
    {'age': 'desc'},  # sort
    page=2, size=20, count=True,  # paginate, and count
    previous_total=1234,  # the total the client has seen with the first page
).as_dict()
```

Tired of building `$match`, `$lookup`, `$skip` and `$limit` stages for every listing?
Here is the ultimate solution.
"""

# Exceptions that are used here and there
from .exc import *

# The heart of MongoPage are the handlers:
# that's where your Query Objects are converted to actual MongoDB filters and pipelines!
from . import handlers

# MongoQuery is the man that parses your Query Object and feeds every section to its handler.
from .query import MongoQuery

# CrudHelper is something that you'll need when building an API on top of a collection:
# paginated listings, statistics, and simple writes
from .crud import CrudHelper

# The connection that your application owns
from .connection import MongoConnection

# Helpers
# Count the rows while fetching a page
from .util import CountingQuery, ResultPage
# Settings object for MongoQuery
from .util import MongoQuerySettingsDict
