"""

If you know how to query documents in MongoDB, you can skip writing pipelines by hand.
MongoPage compiles a compact, declarative query language into native MongoDB filters and pipelines.

Query Object Syntax
-------------------

A Query Object is a dict that application code builds to describe a query.
It is an object with the following properties:

* `filter`: [Filter Operation](#filter-operation) filters the results, using your criteria
* `project`: [Project Operation](#project-operation) selects the fields to be loaded
* `sort`: [Sort Operation](#sort-operation) determines the sorting of the results
* `join`: [Join Operation](#join-operation) loads documents from another collection
* `unwind`: [Unwind Operation](#unwind-operation) flattens an array field
* `aggregate`: [Aggregate Operation](#aggregate-operation) lets you calculate statistics
* `group`: [Group Operation](#group-operation) determines how to group rows while doing aggregation
* `sample`: [Sample Operation](#sample-operation) picks random documents
* `page`, `size`, `previous_total`: [Page Operation](#page-operation): paginates the results
* `count`: [Counting rows](#count-operation) counts the total number of rows along with the page

An example Query Object is:

```python
{
    'project': 'id, name',  # Only fetch these fields
    'sort': {'age': 'asc'},  # Sort by age, ascending
    'filter': {
        'sex': 'female',  # Girls
        'age': ['>=', 18],  # Age >= 18
    },
    'page': 2,  # The second page
    'size': 100,  # Display 100 per page
    'count': True,  # Also count them all
}
```

Detailed syntax for every operation is provided in the relevant sections.
"""

from .project import MongoProject
from .sort import MongoSort
from .group import MongoGroup
from .join import MongoJoin, MongoJoinParams
from .unwind import MongoUnwind
from .filter import MongoFilter, \
    FilterExpressionBase, FilterBooleanExpression, FilterListExpression, \
    FilterLiteralExpression, FilterColumnExpression
from .aggregate import MongoAggregate, \
    AggregateExpressionBase, AggregateLabelledColumn, AggregateColumnOperator, AggregateRowCount
from .sample import MongoSample
from .limit import MongoLimit, PageCursor
from .count import MongoCount
