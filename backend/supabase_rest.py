"""
supabase_rest.py — HTTP-based database client using Supabase's PostgREST API.
Uses only httpx; every call opens a short-lived client so nothing is shared
between requests. Filters are (column, "op.value") pairs built with the
helpers below, so the same column can be filtered twice (date ranges).
"""
import logging
from datetime import date, datetime

import httpx

from config import SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY, STORE_TIMEOUT
from errors import StoreError

logger = logging.getLogger(__name__)


def _fmt(value) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def eq(column: str, value) -> tuple:
    return column, f"eq.{_fmt(value)}"


def neq(column: str, value) -> tuple:
    return column, f"neq.{_fmt(value)}"


def gte(column: str, value) -> tuple:
    return column, f"gte.{_fmt(value)}"


def lte(column: str, value) -> tuple:
    return column, f"lte.{_fmt(value)}"


def is_null(column: str) -> tuple:
    return column, "is.null"


def in_(column: str, values) -> tuple:
    quoted = ",".join('"{}"'.format(_fmt(v).replace('"', '\\"')) for v in values)
    return column, f"in.({quoted})"


class SupabaseRest:
    def __init__(self, url: str = None, service_key: str = None,
                 timeout: float = STORE_TIMEOUT, transport: httpx.BaseTransport = None):
        self.url = (url if url is not None else SUPABASE_URL).rstrip("/")
        self.service_key = service_key if service_key is not None else SUPABASE_SERVICE_ROLE_KEY
        self.timeout = timeout
        self.transport = transport

    def _headers(self, prefer: str = "return=representation") -> dict:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
            "Prefer": prefer,
        }

    def _request(self, method: str, table: str, params: list = None, json=None,
                 prefer: str = "return=representation"):
        if not self.url or not self.service_key:
            raise StoreError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in environment variables")
        url = f"{self.url}/rest/v1/{table}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.request(method, url, params=params or [], json=json,
                                      headers=self._headers(prefer))
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.error(f"{method} {table} failed ({e.response.status_code}): {message}")
            raise StoreError(message) from e
        except httpx.HTTPError as e:
            logger.error(f"{method} {table} failed: {e}")
            raise StoreError(str(e)) from e

        if not resp.content:
            return []
        return resp.json()

    def select(self, table: str, columns: str = "*", filters: list = None,
               order: str = None, limit: int = None, offset: int = None) -> list:
        """Select rows from a table. ``order`` uses PostgREST syntax, e.g. ``date.desc``."""
        params = [("select", columns)]
        params.extend(filters or [])
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))
        if offset:
            params.append(("offset", str(offset)))
        return self._request("GET", table, params)

    def insert(self, table: str, data: dict) -> dict:
        """Insert a row and return the created record."""
        result = self._request("POST", table, json=data)
        return result[0] if isinstance(result, list) and result else {}

    def upsert(self, table: str, data: dict, on_conflict: str) -> dict:
        """Insert or merge on the given unique columns and return the stored record."""
        result = self._request(
            "POST", table, [("on_conflict", on_conflict)], json=data,
            prefer="resolution=merge-duplicates,return=representation",
        )
        return result[0] if isinstance(result, list) and result else {}

    def update(self, table: str, filters: list, data: dict) -> list:
        """Update matching rows and return them (an empty list means nothing matched)."""
        if not filters:
            raise StoreError(f"Refusing to update every row of {table}")
        return self._request("PATCH", table, filters, json=data)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or str(body)
    return str(body)
