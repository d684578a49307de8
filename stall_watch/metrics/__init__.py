"""Cliente del metrics store (API query_range estilo Prometheus)."""

from .client import TimeSeriesClient, compute_step
from .models import QueryResultSet, QueryStatus, Series

__all__ = [
    "TimeSeriesClient",
    "compute_step",
    "QueryResultSet",
    "QueryStatus",
    "Series",
]
