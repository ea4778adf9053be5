"""This module serves the read-only request views."""
from .entities import (
    CategorySummary,
    PageMeta,
    PageResult,
    Pagination,
    RequestCounts,
    RequestFilters,
    Sorting,
    StatusBucket,
)
from .query import QueryProjection
