"""Storage interface shared by the local and remote backends."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

from .config import AppConfig
from .schemas import DailyKind, RecordBase, RecordKind, Snapshot

logger = logging.getLogger(__name__)


def mask_family_code(family_code: str) -> str:
    """Log-safe form of a family code."""
    return (family_code or "")[:2] + "***"


class RecordStore(Protocol):
    def ping(self) -> None: ...

    def ensure_family(self, family_code: str) -> None: ...

    def list_records(self, family_code: str, kind: RecordKind, date: str) -> List[RecordBase]: ...

    def add_record(self, family_code: str, kind: RecordKind, record: RecordBase) -> RecordBase: ...

    def delete_record(self, family_code: str, kind: RecordKind, record_id: int) -> None: ...

    def get_daily(self, family_code: str, kind: DailyKind, date: str) -> Optional[RecordBase]: ...

    def save_daily(self, family_code: str, kind: DailyKind, record: RecordBase) -> int: ...

    def get_settings(self, family_code: str) -> Dict[str, str]: ...

    def set_setting(self, family_code: str, key: str, value: str) -> None: ...

    def export_snapshot(self, family_code: str) -> Snapshot: ...

    def replace_all(self, family_code: str, snapshot: Snapshot) -> int: ...


def build_store(config: AppConfig) -> RecordStore:
    """Pick the backend named by `storage_backend`."""
    if config.storage_backend == "remote":
        from .remote import RemoteStore

        logger.info("using remote store", extra={"base_url": config.remote_base_url})
        return RemoteStore(base_url=config.remote_base_url or "", timeout=config.remote_timeout)

    from .db import SQLiteStore

    logger.info("using sqlite store", extra={"db_path": str(config.resolved_database_path)})
    return SQLiteStore(config.resolved_database_path)
