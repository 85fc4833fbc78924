# src/task_ledger/tasks/task_models.py

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

U64_MAX = 2**64 - 1


@dataclass(slots=True)
class Task:
    id: int
    title: str
    description: str
    done: bool = False
    is_important: bool = False

    # Nanoseconds since the epoch (time.time_ns()).
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Task:
        """
        Build a Task from its wire/snapshot shape.

        Only `id` is required; absent text defaults to "" and absent flags to False,
        so records written before the optional fields existed still load.
        Present fields must already have the right type: nothing is coerced,
        a wrong type raises ValueError.
        """
        if "id" not in raw:
            raise ValueError(f"task record has no id: {raw!r}")
        task_id = _check_u64(raw, "id")

        return cls(
            id=task_id,
            title=_check_type(raw, "title", str, ""),
            description=_check_type(raw, "description", str, ""),
            done=_check_type(raw, "done", bool, False),
            is_important=_check_type(raw, "is_important", bool, False),
            created_at=_check_u64(raw, "created_at") if "created_at" in raw else 0,
            updated_at=_check_u64(raw, "updated_at") if "updated_at" in raw else 0,
        )


def _check_type(raw: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    if key not in raw:
        return default
    value = raw[key]
    if not isinstance(value, kind):
        raise ValueError(f"task field {key!r} must be {kind.__name__}, got {value!r}")
    return value


def _check_u64(raw: dict[str, Any], key: str) -> int:
    value = raw[key]
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"task field {key!r} must be an integer, got {value!r}")
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"task field {key!r} out of range: {value}")
    return value
