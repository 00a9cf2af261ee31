# src/async_mongo_query/base/filter.py
import logging
import re
from typing import Any, Dict, List, Mapping, Sequence, Union

from .operators import ComparisonOperator, LogicalOperator
from .utils import prepare_value, snapshot

log = logging.getLogger(__name__)

Document = Dict[str, Any]


def shape_value(operator: ComparisonOperator, value: Any) -> Any:
    """Shapes a raw value into what the native operator expects."""
    if operator in (ComparisonOperator.IN, ComparisonOperator.NOT_IN):
        if not isinstance(value, (list, set, tuple, frozenset)):
            raise TypeError(
                f"Operator '{operator.value}' requires a list/set/tuple, "
                f"got {type(value).__name__}"
            )
        return prepare_value(list(value))
    if operator == ComparisonOperator.REGEX:
        if not isinstance(value, (str, re.Pattern)):
            raise TypeError(
                f"Operator 'regex' requires a str or compiled pattern, "
                f"got {type(value).__name__}"
            )
        return value
    if operator == ComparisonOperator.TEXT:
        if not isinstance(value, str):
            raise TypeError(
                f"Operator 'text' requires a string value, got {type(value).__name__}"
            )
        return {"$search": value}
    if operator == ComparisonOperator.EXISTS:
        if not isinstance(value, bool):
            raise TypeError(
                f"Operator 'exists' requires a boolean value, got {type(value).__name__}"
            )
        return value
    return prepare_value(value)


def _check_conditions(key: LogicalOperator, conditions: Sequence[Mapping]) -> List[Document]:
    if isinstance(conditions, (str, bytes, Mapping)) or not isinstance(
        conditions, Sequence
    ):
        raise TypeError(
            f"'{key.value}' requires a list of filter documents, "
            f"got {type(conditions).__name__}"
        )
    if not conditions:
        raise ValueError(f"'{key.value}' requires at least one filter document")
    for i, condition in enumerate(conditions):
        if not isinstance(condition, Mapping):
            raise TypeError(
                f"'{key.value}' item {i} must be a filter document, "
                f"got {type(condition).__name__}"
            )
    return [prepare_value(dict(condition)) for condition in conditions]


class FilterDocument:
    """
    Accumulates a MongoDB filter document.

    Operators written through ``add`` for the same field merge into one
    operator sub-document (a literal already on the field becomes ``$eq``).
    ``negate`` and ``set_literal`` replace whatever the field held before,
    and combinators are last-write-wins per key.
    """

    def __init__(self):
        self._document: Document = {}

    def add(self, field: str, operator: ComparisonOperator, value: Any) -> None:
        shaped = shape_value(operator, value)
        current = self._document.get(field)
        if field not in self._document:
            current = {}
            self._document[field] = current
        elif not self._is_operator_document(current):
            # Keep the literal equality alongside the new operator.
            log.debug(f"Promoting literal on '{field}' to '$eq': {current!r}")
            current = {"$eq": current}
            self._document[field] = current
        current[operator.token] = shaped
        log.debug(f"Filter on '{field}' is now: {current!r}")

    def set_literal(self, field: str, value: Any) -> None:
        self._document[field] = prepare_value(value)
        log.debug(f"Set literal equality '{field}' = {value!r}")

    def combine(self, key: LogicalOperator, conditions: Sequence[Mapping]) -> None:
        if key == LogicalOperator.NOT:
            raise ValueError("Use negate() for '$not'; it applies to a single field")
        self._document[key.value] = _check_conditions(key, conditions)
        log.debug(f"Set '{key.value}' with {len(conditions)} condition(s)")

    def negate(self, field: str, condition: Union[Mapping, re.Pattern]) -> None:
        if isinstance(condition, Mapping):
            condition = prepare_value(dict(condition))
        elif not isinstance(condition, re.Pattern):
            raise TypeError(
                f"'$not' requires an operator document or a regex, "
                f"got {type(condition).__name__}"
            )
        self._document[field] = {LogicalOperator.NOT.value: condition}
        log.debug(f"Set negation on '{field}': {self._document[field]!r}")

    @staticmethod
    def _is_operator_document(value: Any) -> bool:
        return (
            isinstance(value, dict)
            and bool(value)
            and all(isinstance(k, str) and k.startswith("$") for k in value)
        )

    def to_dict(self) -> Document:
        """Returns a deep copy of the accumulated filter."""
        return snapshot(self._document)

    @property
    def document(self) -> Document:
        """The live filter document handed to the driver."""
        return self._document

    def __bool__(self) -> bool:
        return bool(self._document)

    def __len__(self) -> int:
        return len(self._document)

    def __repr__(self) -> str:
        return f"FilterDocument({self._document!r})"
