# src/taskboard/base/utils.py

from dataclasses import asdict, is_dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict


def prepare_for_storage(data: Any) -> Any:
    """
    Recursively convert Pydantic models, dataclasses and containers to plain
    storage-compatible values.

    Unlike a JSON dump, datetimes are kept as ``datetime`` objects so that the
    document store can compare them in range filters. Models are dumped with
    their field aliases, which are the stored (camelCase) names.

    Args:
        data: The data to convert

    Returns:
        The converted data, ready for storage
    """
    if data is None:
        return None

    if is_dataclass(data) and not isinstance(data, type):
        return prepare_for_storage(asdict(data))

    if hasattr(data, "model_dump") and callable(getattr(data, "model_dump")):
        return prepare_for_storage(data.model_dump(mode="python", by_alias=True))

    if isinstance(data, dict):
        return {k: prepare_for_storage(v) for k, v in data.items()}

    if isinstance(data, (list, set)):
        return [prepare_for_storage(item) for item in data]

    if isinstance(data, tuple):
        return tuple(prepare_for_storage(item) for item in data)

    if isinstance(data, datetime):
        return ensure_utc(data)

    # BSON has no date-only type
    if isinstance(data, date):
        return datetime.combine(data, time.min, tzinfo=timezone.utc)

    return data


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def partial_changes(changes: Any) -> Dict[str, Any]:
    """
    Attributes of a partial-update model that carry a value.

    None, empty strings and empty lists mean "keep the current value", so
    they are left out. Keys are attribute names, not aliases.
    """
    return {
        name: value
        for name, value in changes.model_dump(exclude_none=True).items()
        if value != "" and value != []
    }
