import copy
import logging
from dataclasses import asdict, is_dataclass
from typing import Any

logger = logging.getLogger(__name__)


def prepare_value(data: Any) -> Any:
    """
    Recursively converts values placed into a filter document into types the
    BSON encoder understands.

    It handles:
    - Pydantic BaseModel instances (dumped by alias, python mode so that
      datetimes and ObjectIds survive)
    - Python dataclasses
    - Dictionaries, lists and tuples (processing each item)
    - Sets (converted to lists, BSON has no set type)
    - Pydantic URL types (converted to strings)

    Anything else (scalars, datetimes, ObjectId, compiled regexes) is returned
    unchanged.
    """
    if data is None:
        return None

    if is_dataclass(data) and not isinstance(data, type):
        return prepare_value(asdict(data))

    if hasattr(data, "model_dump") and callable(getattr(data, "model_dump")):
        try:
            return prepare_value(data.model_dump(by_alias=True))
        except TypeError as e:
            logger.debug(f"model_dump(by_alias=True) failed, retrying plain: {e}")
            return prepare_value(data.model_dump())

    if isinstance(data, dict):
        return {k: prepare_value(v) for k, v in data.items()}

    if isinstance(data, (list, tuple, set, frozenset)):
        return [prepare_value(item) for item in data]

    if data.__class__.__module__ == "pydantic.networks":
        return str(data)

    return data


def snapshot(data: Any) -> Any:
    """
    Deep copy used for error context and build() output. When a value refuses
    deepcopy, dicts and lists are copied item by item so only the offending
    leaves are shared.
    """
    try:
        return copy.deepcopy(data)
    except (TypeError, copy.Error) as e:
        logger.debug(f"Deep copy failed, copying item by item: {e}")
    if isinstance(data, dict):
        return {k: snapshot(v) for k, v in data.items()}
    if isinstance(data, list):
        return [snapshot(item) for item in data]
    if isinstance(data, tuple):
        return tuple(snapshot(item) for item in data)
    # Sessions, cursors and similar driver handles are kept by reference.
    return data
