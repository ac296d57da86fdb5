"""Remote store backed by a SQL database through SQLModel."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, select

from ..db.session import get_session
from ..db.tables import CategoryRecord, TaskRecord, utc_now
from ..errors import RemoteFailure
from .base import CATEGORIES_TABLE, TASKS_TABLE, RemoteStore

logger = logging.getLogger(__name__)

RECORDS: Dict[str, Type[SQLModel]] = {
    TASKS_TABLE: TaskRecord,
    CATEGORIES_TABLE: CategoryRecord,
}
_DATETIME_COLUMNS = ("scheduled_for", "created_at", "updated_at")


def _coerce(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Turn ISO strings into timezone-aware datetimes for DateTime columns.

    Naive values are taken as UTC.
    """
    result = dict(values)
    for key in _DATETIME_COLUMNS:
        value = result.get(key)
        if isinstance(value, str):
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if isinstance(value, datetime) and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        if key in result:
            result[key] = value
    return result


class SqlRemote(RemoteStore):
    """Owner-scoped row store on a SQLAlchemy engine.

    Each call runs its blocking session work in the threadpool so the event
    loop stays free.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def _record(self, table: str, operation: str) -> Type[SQLModel]:
        try:
            return RECORDS[table]
        except KeyError:
            raise RemoteFailure(f"Unknown table '{table}'", operation=operation)

    async def insert(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        record_cls = self._record(table, "insert")
        try:
            return await run_in_threadpool(self._insert, record_cls, row)
        except (SQLAlchemyError, ValueError) as e:
            logger.error(f"Error inserting into '{table}': {e}")
            raise RemoteFailure(f"insert failed: {e}", operation="insert") from e

    def _insert(self, record_cls: Type[SQLModel], row: Mapping[str, Any]) -> Dict[str, Any]:
        with get_session(self.engine) as session:
            record = record_cls(**_coerce(row))
            session.add(record)
            session.commit()
            session.refresh(record)
            return record.model_dump()

    async def select(
        self,
        table: str,
        owner_id: str,
        order_by: str = "created_at",
        columns: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        record_cls = self._record(table, "select")
        try:
            rows = await run_in_threadpool(self._select, record_cls, owner_id, order_by)
        except (SQLAlchemyError, AttributeError) as e:
            logger.error(f"Error selecting from '{table}': {e}")
            raise RemoteFailure(f"select failed: {e}", operation="select") from e
        if columns:
            rows = [{key: row.get(key) for key in columns} for row in rows]
        return rows

    def _select(self, record_cls: Type[SQLModel], owner_id: str, order_by: str) -> List[Dict[str, Any]]:
        with get_session(self.engine) as session:
            statement = (
                select(record_cls)
                .where(record_cls.user_id == owner_id)
                .order_by(getattr(record_cls, order_by).asc())
            )
            return [record.model_dump() for record in session.exec(statement).all()]

    async def update(self, table: str, row_id: str, owner_id: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        record_cls = self._record(table, "update")
        try:
            record = await run_in_threadpool(self._update, record_cls, row_id, owner_id, values)
        except (SQLAlchemyError, ValueError) as e:
            logger.error(f"Error updating '{table}' row {row_id}: {e}")
            raise RemoteFailure(f"update failed: {e}", operation="update") from e
        if record is None:
            raise RemoteFailure(f"Row {row_id} not found in '{table}'", operation="update", status_code=404)
        return record

    def _update(
        self, record_cls: Type[SQLModel], row_id: str, owner_id: str, values: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        with get_session(self.engine) as session:
            record = session.get(record_cls, row_id)
            if record is None or record.user_id != owner_id:
                return None
            for key, value in _coerce(values).items():
                setattr(record, key, value)
            if hasattr(record, "updated_at"):
                record.updated_at = utc_now()
            session.add(record)
            session.commit()
            session.refresh(record)
            return record.model_dump()

    async def update_where(
        self, table: str, owner_id: str, match: Mapping[str, Any], values: Mapping[str, Any]
    ) -> int:
        record_cls = self._record(table, "update_where")
        try:
            return await run_in_threadpool(self._update_where, record_cls, owner_id, match, values)
        except (SQLAlchemyError, AttributeError, ValueError) as e:
            logger.error(f"Error bulk-updating '{table}': {e}")
            raise RemoteFailure(f"update_where failed: {e}", operation="update_where") from e

    def _update_where(
        self, record_cls: Type[SQLModel], owner_id: str, match: Mapping[str, Any], values: Mapping[str, Any]
    ) -> int:
        with get_session(self.engine) as session:
            statement = select(record_cls).where(record_cls.user_id == owner_id)
            for key, value in match.items():
                statement = statement.where(getattr(record_cls, key) == value)
            records = session.exec(statement).all()
            for record in records:
                for key, value in _coerce(values).items():
                    setattr(record, key, value)
                session.add(record)
            # Single commit: either every matching row changes or none does
            session.commit()
            return len(records)

    async def delete(self, table: str, row_id: str, owner_id: str) -> None:
        record_cls = self._record(table, "delete")
        try:
            await run_in_threadpool(self._delete, record_cls, row_id, owner_id)
        except SQLAlchemyError as e:
            logger.error(f"Error deleting '{table}' row {row_id}: {e}")
            raise RemoteFailure(f"delete failed: {e}", operation="delete") from e

    def _delete(self, record_cls: Type[SQLModel], row_id: str, owner_id: str) -> None:
        with get_session(self.engine) as session:
            record = session.get(record_cls, row_id)
            if record is None or record.user_id != owner_id:
                return
            session.delete(record)
            session.commit()
