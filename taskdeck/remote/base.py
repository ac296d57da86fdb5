"""Interface of the remote persistence collaborator."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence

TASKS_TABLE = "tasks"
CATEGORIES_TABLE = "categories"
TABLES = (TASKS_TABLE, CATEGORIES_TABLE)


class RemoteStore(ABC):
    """Row store scoped by owner.

    Every method raises `RemoteFailure` when the call fails or times out.
    Rows are plain dicts keyed by column name; `id` is a string key chosen
    by the store.
    """

    @abstractmethod
    async def insert(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert one row and return it as stored."""

    @abstractmethod
    async def select(
        self,
        table: str,
        owner_id: str,
        order_by: str = "created_at",
        columns: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Return the owner's rows ordered ascending by `order_by`."""

    @abstractmethod
    async def update(self, table: str, row_id: str, owner_id: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Update one row matched by id and owner and return it."""

    @abstractmethod
    async def update_where(
        self, table: str, owner_id: str, match: Mapping[str, Any], values: Mapping[str, Any]
    ) -> int:
        """Update every owner row whose columns equal `match`; returns the row count."""

    @abstractmethod
    async def delete(self, table: str, row_id: str, owner_id: str) -> None:
        """Delete one row matched by id and owner. Missing rows are not an error."""

    async def close(self) -> None:
        """Release connections."""
