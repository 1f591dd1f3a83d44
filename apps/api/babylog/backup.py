"""Backup document helpers used by export and import."""
from __future__ import annotations

import json
from datetime import date as date_cls
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from .errors import ValidationFailure
from .schemas import Snapshot


def backup_filename(on_date: Optional[date_cls] = None) -> str:
    """Download name offered to the browser, e.g. baby_data_2024-01-01.json."""
    on_date = on_date or date_cls.today()
    return f"baby_data_{on_date.isoformat()}.json"


def describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid payload"


def parse_snapshot(document: Union[str, bytes, Mapping[str, Any], Snapshot]) -> Snapshot:
    """Validate a whole backup document up front.

    Accepts the raw JSON text, the decoded object or an already parsed
    Snapshot. Raises ValidationFailure without touching any store.
    """
    if isinstance(document, Snapshot):
        return document
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as exc:
            raise ValidationFailure(f"Snapshot is not valid JSON: {exc.msg}") from exc
    if not isinstance(document, Mapping):
        raise ValidationFailure("Snapshot must be an object.")
    try:
        return Snapshot.model_validate(dict(document))
    except ValidationError as exc:
        raise ValidationFailure(describe_validation_error(exc)) from exc
