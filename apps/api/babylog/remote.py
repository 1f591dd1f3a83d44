"""HTTP backend: the same store operations served by a remote BabyLog API."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .errors import (
    MissingFamilyCode,
    StorageFailure,
    UnknownResourceError,
    ValidationFailure,
)
from .schemas import (
    DAILY_MODELS,
    RECORD_MODELS,
    DailyKind,
    RecordBase,
    RecordKind,
    Snapshot,
)

logger = logging.getLogger(__name__)

FAMILY_HEADER = "X-Family-Code"


def _describe_response(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or "<empty response>"
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return resp.text or "<empty response>"


def _raise_remote_error(resp: httpx.Response, action: str, *, object_label: Optional[str] = None) -> None:
    detail = _describe_response(resp)
    try:
        code = resp.json().get("error")
    except (ValueError, AttributeError):
        code = None
    if code == "unknown_resource" and object_label:
        raise UnknownResourceError(object_label)
    if resp.status_code == 401:
        raise MissingFamilyCode(detail)
    if 400 <= resp.status_code < 500:
        raise ValidationFailure(detail)
    label = f" ({object_label})" if object_label else ""
    raise StorageFailure(f"Remote {action} failed{label}: status={resp.status_code}, body={detail}")


@dataclass
class RemoteStore:
    """Talks to another BabyLog deployment over HTTP.

    `client` may be any `httpx.Client`; tests pass FastAPI's TestClient.
    """

    base_url: str = ""
    timeout: float = 15.0
    client: Optional[httpx.Client] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.client is None:
            if not self.base_url:
                raise ValueError("remote_base_url is required for the remote storage backend.")
            self.client = httpx.Client(base_url=self.base_url.rstrip("/"), timeout=self.timeout)

    def close(self) -> None:
        if self.client is not None:
            self.client.close()

    def _headers(self, family_code: Optional[str]) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if family_code:
            headers[FAMILY_HEADER] = family_code
        return headers

    def request(
        self,
        method: str,
        path: str,
        family_code: Optional[str] = None,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        try:
            return self.client.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._headers(family_code),
            )
        except httpx.HTTPError as exc:
            logger.warning("remote request failed", extra={"method": method, "url_path": path})
            raise StorageFailure(f"Remote {method} {path} failed: {exc}") from exc

    def _call(
        self,
        method: str,
        path: str,
        family_code: Optional[str],
        action: str,
        *,
        object_label: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        resp = self.request(method, path, family_code, params=params, json=json)
        if resp.status_code >= 400:
            _raise_remote_error(resp, action, object_label=object_label)
        return resp.json() if resp.content else None

    def ping(self) -> None:
        self._call("GET", "/health", None, "health check")

    def ensure_family(self, family_code: str) -> None:
        self._call("POST", "/api/login", None, "login", json={"familyCode": family_code})

    def list_records(self, family_code: str, kind: RecordKind, date: str) -> List[RecordBase]:
        rows = self._call(
            "GET", f"/api/data/{kind.value}", family_code, "list",
            object_label=kind.value, params={"date": date},
        )
        model = RECORD_MODELS[kind]
        return [model.model_validate(row) for row in rows or []]

    def add_record(self, family_code: str, kind: RecordKind, record: RecordBase) -> RecordBase:
        payload = record.model_dump(mode="json", by_alias=True, exclude={"id"})
        row = self._call(
            "POST", f"/api/data/{kind.value}", family_code, "insert",
            object_label=kind.value, json=payload,
        )
        return RECORD_MODELS[kind].model_validate(row)

    def delete_record(self, family_code: str, kind: RecordKind, record_id: int) -> None:
        self._call(
            "DELETE", f"/api/data/{kind.value}/{record_id}", family_code, "delete",
            object_label=kind.value,
        )

    def get_daily(self, family_code: str, kind: DailyKind, date: str) -> Optional[RecordBase]:
        row = self._call(
            "GET", f"/api/data/{kind.value}", family_code, "select",
            object_label=kind.value, params={"date": date},
        )
        if not row:
            return None
        return DAILY_MODELS[kind].model_validate(row)

    def save_daily(self, family_code: str, kind: DailyKind, record: RecordBase) -> int:
        payload = record.model_dump(mode="json", by_alias=True, exclude={"id"})
        body = self._call(
            "POST", f"/api/data/{kind.value}", family_code, "upsert",
            object_label=kind.value, json=payload,
        )
        return int(body["id"])

    def get_settings(self, family_code: str) -> Dict[str, str]:
        return self._call("GET", "/api/settings", family_code, "select", object_label="settings") or {}

    def set_setting(self, family_code: str, key: str, value: str) -> None:
        self._call(
            "POST", "/api/settings", family_code, "upsert",
            object_label="settings", json={"key": key, "value": value},
        )

    def export_snapshot(self, family_code: str) -> Snapshot:
        body = self._call("GET", "/api/export", family_code, "export")
        return Snapshot.model_validate(body)

    def replace_all(self, family_code: str, snapshot: Snapshot) -> int:
        body = self._call("POST", "/api/import", family_code, "import", json=snapshot.to_wire())
        return int(body["imported"])
