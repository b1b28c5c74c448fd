"""Record construction and dict serialization for `holder_rewards`.

Round-trip property (tested): ``pool_from_dict(pool_to_dict(p)) == p`` and
likewise for holder records.
"""

from __future__ import annotations

from typing import Any, Mapping

from .types import HolderRecord, PoolRecord

# Auto-derived from the dataclass field definitions (single source of truth).
POOL_FIELD_NAMES: tuple[str, ...] = tuple(PoolRecord.__dataclass_fields__)
HOLDER_FIELD_NAMES: tuple[str, ...] = tuple(HolderRecord.__dataclass_fields__)


def _to_dict(record: Any, names: tuple[str, ...]) -> dict[str, int | str]:
    return {name: getattr(record, name) for name in names}


def _kwargs_from(d: Mapping[str, Any], names: tuple[str, ...], kind: str) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    for name in names:
        val = d[name]
        if isinstance(val, bool):
            raise TypeError(f"{kind} field {name!r} must be int|str, got bool")
        if isinstance(val, int):
            kwargs[name] = int(val)
        elif isinstance(val, str):
            kwargs[name] = val.lower()
        else:
            raise TypeError(f"{kind} field {name!r} must be int|str, got {type(val).__name__}")
    return kwargs


def pool_to_dict(pool: PoolRecord) -> dict[str, int | str]:
    return _to_dict(pool, POOL_FIELD_NAMES)


def pool_from_dict(d: Mapping[str, Any]) -> PoolRecord:
    """Deserialize a dict to a PoolRecord. Raises KeyError on missing fields."""
    return PoolRecord(**_kwargs_from(d, POOL_FIELD_NAMES, "pool"))


def holder_to_dict(holder: HolderRecord) -> dict[str, int | str]:
    return _to_dict(holder, HOLDER_FIELD_NAMES)


def holder_from_dict(d: Mapping[str, Any]) -> HolderRecord:
    """Deserialize a dict to a HolderRecord. Raises KeyError on missing fields."""
    return HolderRecord(**_kwargs_from(d, HOLDER_FIELD_NAMES, "holder"))
