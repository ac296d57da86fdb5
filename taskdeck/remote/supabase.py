"""PostgREST client for a Supabase project's `tasks` and `categories` tables."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from ..errors import RemoteFailure
from .base import TABLES, RemoteStore

logger = logging.getLogger(__name__)


class SupabaseRemote(RemoteStore):
    """HTTP client for the Supabase REST endpoint.

    Row-level security is enforced by the project; every request carries the
    signed-in user's access token and an explicit `user_id` filter.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = f"{url.rstrip('/')}/rest/v1"
        self.anon_key = anon_key
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "apikey": self.anon_key,
                    "Authorization": f"Bearer {self.access_token or self.anon_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _request(self, method: str, table: str, operation: str, **kwargs) -> httpx.Response:
        if table not in TABLES:
            raise RemoteFailure(f"Unknown table '{table}'", operation=operation)
        client = await self._get_client()
        try:
            response = await client.request(method, f"/{table}", **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Error during {operation} on '{table}': {e}")
            raise RemoteFailure(f"{operation} failed: {e}", operation=operation) from e
        if response.status_code >= 400:
            logger.error(f"Failed {operation} on '{table}': {response.status_code} - {response.text}")
            raise RemoteFailure(
                f"{operation} failed with status {response.status_code}",
                operation=operation,
                status_code=response.status_code,
            )
        return response

    async def insert(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        response = await self._request(
            "POST", table, "insert",
            json=dict(row),
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows:
            raise RemoteFailure(f"Insert into '{table}' returned no row", operation="insert")
        return rows[0]

    async def select(
        self,
        table: str,
        owner_id: str,
        order_by: str = "created_at",
        columns: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        params = {
            "select": ",".join(columns) if columns else "*",
            "user_id": f"eq.{owner_id}",
            "order": f"{order_by}.asc",
        }
        response = await self._request("GET", table, "select", params=params)
        return response.json()

    async def update(self, table: str, row_id: str, owner_id: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        payload = dict(values)
        if table == "tasks":
            payload["updated_at"] = datetime.now(timezone.utc).isoformat()
        response = await self._request(
            "PATCH", table, "update",
            params={"id": f"eq.{row_id}", "user_id": f"eq.{owner_id}"},
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows:
            raise RemoteFailure(f"Row {row_id} not found in '{table}'", operation="update", status_code=404)
        return rows[0]

    async def update_where(
        self, table: str, owner_id: str, match: Mapping[str, Any], values: Mapping[str, Any]
    ) -> int:
        params = {key: f"eq.{value}" for key, value in match.items()}
        params["user_id"] = f"eq.{owner_id}"
        response = await self._request(
            "PATCH", table, "update_where",
            params=params,
            json=dict(values),
            headers={"Prefer": "return=representation"},
        )
        return len(response.json())

    async def delete(self, table: str, row_id: str, owner_id: str) -> None:
        await self._request(
            "DELETE", table, "delete",
            params={"id": f"eq.{row_id}", "user_id": f"eq.{owner_id}"},
        )
