from __future__ import annotations

import json
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as SchemaError

from inspection.errors import FormatError
from inspection.models import Store
from inspection.store import store_from_dict

REQUIRED_FIELDS = ("projects", "issues")


class BackupDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    projects: List[Dict[str, Any]]
    issues: List[Dict[str, Any]]
    templates: Optional[List[Dict[str, Any]]] = None


def serialize(store: Store) -> str:
    return json.dumps(store.to_dict(), ensure_ascii=False, indent=2)


def _schema_failure(exc: SchemaError) -> FormatError:
    missing = [str(err["loc"][0]) for err in exc.errors() if err["type"] == "missing" and err["loc"]]
    if missing:
        return FormatError("backup file is not a valid store", missing_fields=missing)
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return FormatError(f"backup file is not a valid store: {location} {first['msg']}")


def deserialize(text: str) -> Store:
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise FormatError(f"backup file is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise FormatError("backup file is not a valid store", missing_fields=REQUIRED_FIELDS)
    try:
        document = BackupDocument.model_validate(data)
    except SchemaError as exc:
        raise _schema_failure(exc) from exc
    try:
        return store_from_dict(document.model_dump())
    except (TypeError, ValueError) as exc:
        raise FormatError(f"backup file contains an invalid record: {exc}") from exc


def backup_filename(today: Optional[date] = None) -> str:
    return f"backup-{(today or date.today()).isoformat()}.json"
