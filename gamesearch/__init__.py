"""Game catalog search orchestration.

Keeps an Elasticsearch index in step with the catalog system-of-record and
exposes search, ranking and aggregation views over it.
"""

__version__ = "0.1.0"
