# src/async_mongo_query/__init__.py

"""
Async Mongo Query Library Initialization.

This package provides a fluent, asynchronous query builder for MongoDB:
filter predicates, sort/projection/pagination options, population of
referenced documents and aggregation stages, run through a single terminal
coroutine.

It initializes a logger with a NullHandler and makes the builder, the model
contract, the Motor-backed model and the error taxonomy available at the top
level.
"""

import logging

# --------------------------------------------------------------------------
# Logging Setup
# --------------------------------------------------------------------------
# Library logs are discarded unless the consuming application configures
# logging for "async_mongo_query".
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
logger.propagate = False

# --------------------------------------------------------------------------
# Core Interface and Exception Exports
# --------------------------------------------------------------------------
from .base.interfaces import Model
from .base.exceptions import (
    ErrorCode,
    QueryBuilderError,
    CountError,
    ExplainError,
    QueryExecutionError,
    InvalidOperatorError,
)

# --------------------------------------------------------------------------
# Query Building Exports
# --------------------------------------------------------------------------
from .base.operators import ComparisonOperator, LogicalOperator
from .base.options import QueryOptions
from .base.query import QueryBuilder

# --------------------------------------------------------------------------
# Model Implementation Exports
# --------------------------------------------------------------------------
from .db_implementations.mongodb_model import MongoDBModel, Reference

__all__ = [
    # Core
    "Model",
    # Exceptions
    "ErrorCode",
    "QueryBuilderError",
    "CountError",
    "ExplainError",
    "QueryExecutionError",
    "InvalidOperatorError",
    # Query
    "QueryBuilder",
    "QueryOptions",
    "ComparisonOperator",
    "LogicalOperator",
    # Implementations
    "MongoDBModel",
    "Reference",
    # Logging
    "logger",
]

__version__ = "0.1.0"
