# =============================================================================
# demonlist_core/data/supabase_client.py
# Minimal REST client for the Supabase (PostgREST) data API
# =============================================================================
"""
SupabaseRestClient - one request per call against ``<url>/rest/v1/<table>``.

The client performs no retries and keeps no state beyond its configuration
and HTTP session. Failures are raised to the caller:

- RemoteTransportError: network failure, timeout, or unparseable body
- RemoteRejectionError: any non-2xx status
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import requests

from demonlist_core.data.config import SupabaseConfig
from demonlist_core.errors import RemoteRejectionError, RemoteTransportError
from demonlist_core.logging import get_logger
from demonlist_core.models import Collection

logger = get_logger(__name__)

Record = Dict[str, Any]


class SupabaseRestClient:
    """
    REST client for the four list tables.

    Usage:
        client = SupabaseRestClient(load_supabase_config())
        users = client.fetch_all("users")
        client.upsert("users", users)
    """

    def __init__(self, config: SupabaseConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": config.key,
            "Authorization": f"Bearer {config.key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    # =========================================================================
    # LOW-LEVEL REQUEST
    # =========================================================================

    def _request(
        self,
        table: Union[Collection, str],
        method: str = "GET",
        params: Optional[Dict[str, str]] = None,
        body: Optional[Any] = None,
        prefer: str = "return=representation",
    ) -> List[Record]:
        """
        Make one HTTP request and normalise the result to a list of records.

        Args:
            table: Collection or raw table name
            method: HTTP method
            params: Query string parameters
            body: JSON body (POST/PATCH only)
            prefer: PostgREST ``Prefer`` header value

        Returns:
            Parsed JSON rows, or [] for DELETE / 204 responses
        """
        table_name = table.value if isinstance(table, Collection) else table
        url = f"{self.config.rest_url}/{table_name}"

        logger.debug(f"Supabase {method} {table_name} params={params}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=body if method in ("POST", "PATCH", "PUT") else None,
                headers={"Prefer": prefer},
                timeout=self.config.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise RemoteTransportError(
                f"Request to {table_name} failed: {e}",
                table=table_name,
                method=method,
            ) from e

        if not 200 <= response.status_code < 300:
            raise RemoteRejectionError(
                f"HTTP {response.status_code} from {table_name}",
                status_code=response.status_code,
                body=response.text,
                table=table_name,
                method=method,
            )

        if response.status_code == 204 or method == "DELETE":
            return []

        if not response.content:
            return []

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteTransportError(
                f"Malformed JSON from {table_name}: {e}",
                table=table_name,
                method=method,
            ) from e

        if data is None:
            return []
        return data if isinstance(data, list) else [data]

    # =========================================================================
    # COLLECTION OPERATIONS
    # =========================================================================

    def fetch_all(self, table: Union[Collection, str]) -> List[Record]:
        """Fetch every row (all columns) of a table."""
        return self._request(table, "GET", params={"select": "*"})

    def insert(self, table: Union[Collection, str], records: Union[Record, List[Record]]) -> List[Record]:
        """Insert one or more rows."""
        rows = records if isinstance(records, list) else [records]
        return self._request(table, "POST", body=rows)

    def upsert(self, table: Union[Collection, str], records: Union[Record, List[Record]]) -> List[Record]:
        """
        Insert-or-update rows keyed by ``id``.

        Every row is stamped with ``updated_at`` (UTC, ISO-8601) so the remote
        keeps a last-modified time; the local records are not modified.
        """
        rows = records if isinstance(records, list) else [records]
        stamp = datetime.now(timezone.utc).isoformat()
        rows = [{**row, "updated_at": stamp} for row in rows]

        return self._request(
            table,
            "POST",
            params={"on_conflict": "id", "select": "*"},
            body=rows,
            prefer="resolution=merge-duplicates,return=representation",
        )

    def patch_by_id(self, table: Union[Collection, str], record_id: str, partial: Record) -> List[Record]:
        """Update selected columns of the row with the given id."""
        return self._request(table, "PATCH", params={"id": f"eq.{record_id}"}, body=partial)

    def delete_by_id(self, table: Union[Collection, str], record_id: str) -> List[Record]:
        """Delete the row with the given id; always returns []."""
        return self._request(table, "DELETE", params={"id": f"eq.{record_id}"})

    def ping(self) -> Dict[str, Any]:
        """
        Test the connection with a one-row read of ``users``.

        Returns:
            Dict with status and message; never raises
        """
        try:
            rows = self._request(Collection.USERS, "GET", params={"select": "*", "limit": "1"})
            return {
                "status": "success",
                "message": f"Connected to {self.config.url}",
                "rows_fetched": len(rows),
            }
        except (RemoteTransportError, RemoteRejectionError) as e:
            return {
                "status": "error",
                "message": f"Connection failed: {e.message}",
            }

    def close(self) -> None:
        self.session.close()
