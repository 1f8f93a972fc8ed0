"""Minimal Grist document client (REST API over ``requests``)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

Columns = Dict[str, List[Any]]


class GristError(RuntimeError):
    pass


class GristClient:
    def __init__(self, server: str, doc_id: str, api_key: Optional[str] = None, *, timeout: float = 30.0, session: Optional[requests.Session] = None):
        if not doc_id:
            raise GristError("A Grist document id is required")
        self.base_url = f"{server.rstrip('/')}/api/docs/{doc_id}"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    def _get(self, path: str) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        resp = self.session.get(url, timeout=self.timeout)
        if resp.status_code != 200:
            raise GristError(f"GET {url} failed (HTTP {resp.status_code}): {resp.text[:300]}")
        return resp.json()

    def fetch_records(self, table_id: str) -> List[Dict[str, Any]]:
        """Rows of ``table_id`` as flat dicts (``id`` plus the row's fields)."""
        payload = self._get(f"tables/{table_id}/records")
        rows = []
        for rec in payload.get("records", []) or []:
            row = {"id": rec.get("id")}
            row.update(rec.get("fields") or {})
            rows.append(row)
        logger.debug("Fetched %d rows from %s", len(rows), table_id)
        return rows

    def fetch_table(self, table_id: str) -> Columns:
        """Column-oriented view of ``table_id``: parallel lists indexed by row position."""
        return rows_to_columns(self.fetch_records(table_id))


def rows_to_columns(rows: List[Dict[str, Any]]) -> Columns:
    columns: Columns = {}
    for row in rows:
        for key in row:
            columns.setdefault(key, [])
    for row in rows:
        for key, values in columns.items():
            values.append(row.get(key))
    return columns
