import logging
from typing import Any, Dict, Iterator, List, Mapping

from .utils import prepare_value, snapshot

log = logging.getLogger(__name__)


def check_stage(stage: Any) -> Dict[str, Any]:
    """A stage is a mapping with exactly one '$'-prefixed key, e.g. {'$match': {...}}."""
    if not isinstance(stage, Mapping):
        raise TypeError(
            f"Aggregation stage must be a mapping, got {type(stage).__name__}"
        )
    if len(stage) != 1:
        raise ValueError(
            f"Aggregation stage must have exactly one operator key, got {list(stage)!r}"
        )
    (name,) = stage.keys()
    if not isinstance(name, str) or not name.startswith("$"):
        raise ValueError(f"Aggregation stage name must start with '$', got {name!r}")
    return prepare_value(dict(stage))


class Pipeline:
    """Ordered aggregation stages; order is exactly the append order."""

    def __init__(self):
        self._stages: List[Dict[str, Any]] = []

    def append(self, stage: Mapping[str, Any]) -> None:
        checked = check_stage(stage)
        self._stages.append(checked)
        log.debug(f"Appended stage #{len(self._stages)}: {next(iter(checked))}")

    def to_list(self) -> List[Dict[str, Any]]:
        return snapshot(self._stages)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self._stages)

    def __len__(self) -> int:
        return len(self._stages)

    def __bool__(self) -> bool:
        return bool(self._stages)

    def __repr__(self) -> str:
        return f"Pipeline({[next(iter(s)) for s in self._stages]!r})"
