from __future__ import annotations

from typing import Any

from bson import json_util
from pydantic import BaseModel

from learnmongo.utils.pagination import Page

_JSON_OPTIONS = json_util.RELAXED_JSON_OPTIONS


def to_plain(value: Any) -> Any:
    """Convert models and pages into BSON-encodable Python values."""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="python")
    if isinstance(value, Page):
        plain: dict[str, Any] = {"data": [to_plain(item) for item in value.items]}
        if value.before is not None:
            plain["before"] = value.before
        if value.after is not None:
            plain["after"] = value.after
        return plain
    if isinstance(value, dict):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value


def to_pretty_json(value: Any) -> str:
    """Render a query result as indented relaxed extended JSON."""
    return json_util.dumps(to_plain(value), indent=2, json_options=_JSON_OPTIONS)
