# src/async_mongo_query/base/query.py
import logging
import re
from typing import (
    Any,
    Dict,
    Generic,
    List,
    Mapping,
    NoReturn,
    Optional,
    Sequence,
    TypeVar,
    Union,
)

from .exceptions import (
    CountError,
    ExplainError,
    InvalidOperatorError,
    QueryBuilderError,
    QueryExecutionError,
)
from .filter import FilterDocument
from .interfaces import Model
from .operators import ComparisonOperator, LogicalOperator
from .options import QueryOptions, SortSpec, normalize_sort
from .pipeline import Pipeline

# --- Setup Logging ---
log = logging.getLogger(__name__)

# --- Generic Type Variables ---
T = TypeVar("T")

DEFAULT_EXPLAIN_VERBOSITY = "queryPlanner"


# --- Query Builder ---
class QueryBuilder(Generic[T]):
    """
    Builds and runs a MongoDB query through a fluent API.

    Every mutating method returns the same builder so calls can be chained;
    the query is only sent when one of the terminal coroutines (``execute``,
    ``execute_one``, ``count``, ``explain``) is awaited. A terminal call does
    not reset the builder.

    When at least one aggregation stage has been added, ``execute`` runs the
    pipeline alone: filter, sort, projection, pagination and populated fields
    are ignored.

    Example:
        >>> users = await (
        ...     QueryBuilder(user_model)
        ...     .by_field("age", "greater_than_or_equal", 18)
        ...     .by_field("age", "less_than", 65)
        ...     .sort_by({"name": 1})
        ...     .paginate(2, 20)
        ...     .execute()
        ... )
    """

    _model: Model[T]
    _filter: FilterDocument
    _options: QueryOptions
    _pipeline: Pipeline
    _strict: bool
    _logger: logging.Logger

    def __init__(self, model: Model[T], strict: bool = False):
        if not isinstance(model, Model):
            raise TypeError(
                f"QueryBuilder requires a Model instance, got {type(model).__name__}"
            )
        self._logger = log
        self._model = model
        self._filter = FilterDocument()
        self._options = QueryOptions()
        self._pipeline = Pipeline()
        self._strict = strict
        self._logger.debug(
            f"Initialized QueryBuilder for {type(model).__name__} (strict={strict})"
        )

    # --- Predicates ---

    def by_field(
        self,
        field: str,
        operator: Union[str, ComparisonOperator],
        value: Any,
    ) -> "QueryBuilder[T]":
        """
        Adds ``field <operator> value``. Operators on the same field merge into
        one sub-document. An unknown operator leaves the filter untouched; in
        strict mode it raises InvalidOperatorError instead.
        """
        resolved = ComparisonOperator.resolve(operator)
        if resolved is None:
            if self._strict:
                raise InvalidOperatorError(field, operator)
            self._logger.warning(
                f"Ignoring unknown comparison operator {operator!r} on field '{field}'"
            )
            return self
        self._filter.add(field, resolved, value)
        return self

    def by_id(self, id: Any) -> "QueryBuilder[T]":
        """Matches the identity field literally, without an operator."""
        self._filter.set_literal(self._model.id_field, id)
        return self

    def and_(self, conditions: Sequence[Mapping[str, Any]]) -> "QueryBuilder[T]":
        self._filter.combine(LogicalOperator.AND, conditions)
        return self

    def or_(self, conditions: Sequence[Mapping[str, Any]]) -> "QueryBuilder[T]":
        self._filter.combine(LogicalOperator.OR, conditions)
        return self

    def nor(self, conditions: Sequence[Mapping[str, Any]]) -> "QueryBuilder[T]":
        self._filter.combine(LogicalOperator.NOR, conditions)
        return self

    def not_(
        self, field: str, condition: Union[Mapping[str, Any], re.Pattern]
    ) -> "QueryBuilder[T]":
        """
        Sets ``field`` to ``{"$not": condition}``. Unlike ``by_field`` this
        replaces any constraint already on the field.
        """
        self._filter.negate(field, condition)
        return self

    # --- Options ---

    def limit(self, num: int) -> "QueryBuilder[T]":
        """Sets the limit as given; the server rejects invalid values."""
        self._options.limit = num
        self._logger.debug(f"Query limit set to: {num}")
        return self

    def skip(self, num: int) -> "QueryBuilder[T]":
        """Sets the skip as given; the server rejects invalid values."""
        self._options.skip = num
        self._logger.debug(f"Query skip set to: {num}")
        return self

    def sort_by(self, sort: SortSpec) -> "QueryBuilder[T]":
        """Replaces the sort specification, e.g. ``{"age": -1, "name": 1}``."""
        self._options.sort = normalize_sort(sort)
        self._logger.debug(f"Sort set to: {self._options.sort}")
        return self

    def select(self, projection: Mapping[str, int]) -> "QueryBuilder[T]":
        """Replaces the projection (field -> 1 to include, 0 to exclude)."""
        if not isinstance(projection, Mapping):
            raise TypeError(
                f"select requires a mapping, got {type(projection).__name__}"
            )
        self._options.projection = dict(projection)
        self._logger.debug(f"Projection set to: {self._options.projection}")
        return self

    def populate(self, *fields: str) -> "QueryBuilder[T]":
        """Queues reference fields to be resolved by the model after the find."""
        self._options.add_populated(fields)
        self._logger.debug(f"Populated fields: {self._options.populated_fields}")
        return self

    def paginate(self, page: int, page_size: int) -> "QueryBuilder[T]":
        """Derives skip and limit from a 1-based page number."""
        self._options.paginate(page, page_size)
        return self

    def aggregate(self, stage: Mapping[str, Any]) -> "QueryBuilder[T]":
        """Appends one aggregation stage, e.g. ``{"$match": {...}}``."""
        self._pipeline.append(stage)
        return self

    def set_session(self, session: Any) -> "QueryBuilder[T]":
        """Binds a client session forwarded to every terminal operation."""
        self._options.session = session
        self._logger.debug(f"Session bound: {session is not None}")
        return self

    # --- Inspection ---

    @property
    def model(self) -> Model[T]:
        return self._model

    @property
    def filter(self) -> Dict[str, Any]:
        """A copy of the filter document built so far."""
        return self._filter.to_dict()

    @property
    def options(self) -> QueryOptions:
        return self._options

    @property
    def pipeline(self) -> List[Dict[str, Any]]:
        return self._pipeline.to_list()

    @property
    def populated_fields(self) -> List[str]:
        return list(self._options.populated_fields)

    def build(self) -> Dict[str, Any]:
        """Snapshot of the native query parts, without running anything."""
        return {
            "filter": self._filter.to_dict(),
            "options": self._options.diagnostics(),
            "populate": list(self._options.populated_fields),
            "pipeline": self._pipeline.to_list(),
        }

    def __repr__(self) -> str:
        return (
            f"QueryBuilder(model={type(self._model).__name__}, "
            f"filter={self._filter.document!r}, options={self._options!r}, "
            f"pipeline={self._pipeline!r})"
        )

    # --- Terminal Operations ---

    async def count(self) -> int:
        """Counts the documents matching the filter."""
        self._logger.debug(f"Counting documents matching: {self._filter.document}")
        try:
            collection = self._model.get_collection()
            result = await collection.count_documents(
                self._filter.to_dict(), session=self._options.session
            )
        except Exception as e:
            self._fail(
                e,
                CountError(f"Count failed: {e}", filter=self._filter.to_dict()),
            )
        self._logger.info(f"Counted {result} document(s).")
        return int(result)

    async def explain(self, verbosity: str = DEFAULT_EXPLAIN_VERBOSITY) -> Dict[str, Any]:
        """
        Returns the server's plan for the find this builder would run.

        Args:
            verbosity: "queryPlanner", "executionStats" or "allPlansExecution".
        """
        self._logger.debug(f"Explaining query at verbosity '{verbosity}'")
        try:
            collection = self._model.get_collection()
            command = self._explain_command(collection.name, verbosity)
            plan = await collection.database.command(
                command, session=self._options.session
            )
        except Exception as e:
            self._fail(
                e,
                ExplainError(
                    f"Explain failed: {e}",
                    filter=self._filter.to_dict(),
                    options=self._options.diagnostics(),
                ),
            )
        self._logger.info(f"Explain ({verbosity}) completed.")
        return plan

    async def execute(self) -> List[T]:
        """
        Runs the aggregation pipeline if any stage was added, otherwise a find
        through the model with sort, projection, pagination and population.
        """
        try:
            if self._pipeline:
                results = await self._run_pipeline()
            else:
                results = await self._run_find()
        except Exception as e:
            self._fail(e, self._execution_error(e))
        self._logger.info(f"Query returned {len(results)} document(s).")
        return results

    async def execute_one(self) -> Optional[T]:
        """
        First result of ``execute()``, or None when nothing matches. Failures
        surface as the QueryExecutionError already raised by ``execute``.
        """
        results = await self.execute()
        return results[0] if results else None

    # --- Dispatch Helpers ---

    async def _run_pipeline(self) -> List[Any]:
        if self._filter or self._options.has_find_modifiers:
            self._logger.warning(
                "Aggregation pipeline set; ignoring filter, sort, projection, "
                "pagination and populated fields."
            )
        stages = self._pipeline.to_list()
        self._logger.debug(f"Running aggregation with {len(stages)} stage(s)")
        collection = self._model.get_collection()
        cursor = collection.aggregate(stages, session=self._options.session)
        return await cursor.to_list(length=None)

    async def _run_find(self) -> List[T]:
        options = self._options.to_find_options()
        populated = list(self._options.populated_fields)
        self._logger.debug(
            f"Running find filter={self._filter.document} "
            f"options={self._options!r} populate={populated}"
        )
        return await self._model.find(self._filter.to_dict(), options, populated)

    def _explain_command(self, collection_name: str, verbosity: str) -> Dict[str, Any]:
        find_command: Dict[str, Any] = {
            "find": collection_name,
            "filter": self._filter.to_dict(),
        }
        find_command.update(self._options.to_find_options(include_session=False))
        return {"explain": find_command, "verbosity": verbosity}

    def _execution_error(self, error: Exception) -> QueryExecutionError:
        return QueryExecutionError(
            f"Query execution failed: {error}",
            filter=self._filter.to_dict(),
            options=self._options.diagnostics(),
            populated_fields=list(self._options.populated_fields),
        )

    def _fail(self, error: Exception, wrapped: QueryBuilderError) -> NoReturn:
        self._logger.error(
            f"{type(wrapped).__name__}: {error} (context={wrapped.context!r})",
            exc_info=True,
        )
        raise wrapped from error
