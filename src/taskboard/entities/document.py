# src/taskboard/entities/document.py

from typing import Any, List

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def pascal_key(key: str) -> str:
    """``assignedTo`` -> ``AssignedTo``."""
    return key[:1].upper() + key[1:]


class StoredDocument(BaseModel):
    """
    Base for entities kept in the shared collections.

    Keys are written camelCase. The earlier service wrote most keys in
    PascalCase (``Email``, ``AssignedTo``, ``DueDate``); on read such a key is
    accepted when its camelCase form is absent.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def stored_keys(cls) -> List[str]:
        return [info.alias or name for name, info in cls.model_fields.items()]

    @model_validator(mode="before")
    @classmethod
    def _accept_pascal_case_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name, info in cls.model_fields.items():
            key = info.alias or name
            legacy = pascal_key(key)
            if legacy in data and key not in data and name not in data:
                data[key] = data.pop(legacy)
        return data
