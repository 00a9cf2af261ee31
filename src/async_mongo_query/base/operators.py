# src/async_mongo_query/base/operators.py
import logging
import re
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

log = logging.getLogger(__name__)


# --- Comparison Operator Enum ---
class ComparisonOperator(Enum):
    """Logical comparison operators accepted by ``QueryBuilder.by_field``."""

    EQUAL = "equal"
    NOT_EQUAL = "not_equal"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    # Membership
    IN = "in"
    NOT_IN = "not_in"
    # Existence
    EXISTS = "exists"
    # Text matching
    REGEX = "regex"
    TEXT = "text"

    @property
    def token(self) -> str:
        """The MongoDB operator this member translates to."""
        return MONGO_OPERATOR_MAP[self]

    @classmethod
    def resolve(cls, operator: Any) -> Optional["ComparisonOperator"]:
        """
        Looks up an operator given as a member, its snake_case value or its
        camelCase spelling ("greaterThanOrEqual"). Returns None when unknown.
        """
        if isinstance(operator, cls):
            return operator
        if not isinstance(operator, str):
            return None
        normalized = _CAMEL_BOUNDARY.sub("_", operator).lower()
        return _BY_VALUE.get(normalized)


# --- Logical Combinators ---
class LogicalOperator(Enum):
    """Keys that combine nested filter documents."""

    AND = "$and"
    OR = "$or"
    NOR = "$nor"
    NOT = "$not"


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Read-only dispatch table, checked on every by_field call.
MONGO_OPERATOR_MAP: Mapping[ComparisonOperator, str] = MappingProxyType(
    {
        ComparisonOperator.EQUAL: "$eq",
        ComparisonOperator.NOT_EQUAL: "$ne",
        ComparisonOperator.GREATER_THAN: "$gt",
        ComparisonOperator.GREATER_THAN_OR_EQUAL: "$gte",
        ComparisonOperator.LESS_THAN: "$lt",
        ComparisonOperator.LESS_THAN_OR_EQUAL: "$lte",
        ComparisonOperator.IN: "$in",
        ComparisonOperator.NOT_IN: "$nin",
        ComparisonOperator.EXISTS: "$exists",
        ComparisonOperator.REGEX: "$regex",
        ComparisonOperator.TEXT: "$text",
    }
)

_BY_VALUE: Mapping[str, ComparisonOperator] = MappingProxyType(
    {op.value: op for op in ComparisonOperator}
)
