"""
Supabase client - async wrapper over the PostgREST row API and the GoTrue
auth API, built on httpx.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

# PostgREST operators accepted as ``column__op`` filter keys
FILTER_OPERATORS = {"eq", "neq", "gt", "gte", "lt", "lte", "in", "is", "ilike"}


class SupabaseError(Exception):
    """Raised when the BaaS answers with a non-2xx status or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if hasattr(value, "value"):
        # Enum members
        return str(value.value)
    return str(value)


def build_filter_params(filters: Optional[Dict[str, Any]]) -> List[Tuple[str, str]]:
    """
    Translate a filter dict into PostgREST query parameters.

    ``{"ativo": True}`` becomes ``ativo=eq.true``; list values become ``in``
    filters; ``{"data_expiracao__lte": x}`` uses an explicit operator.
    """
    params: List[Tuple[str, str]] = []
    for key, value in (filters or {}).items():
        column, _, op = key.partition("__")
        if op and op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {op}")
        if not op:
            op = "in" if isinstance(value, (list, tuple, set)) else "eq"
        if op == "eq" and value is None:
            op = "is"
        if op == "in":
            joined = ",".join(_format_value(v) for v in value)
            params.append((column, f"in.({joined})"))
        else:
            params.append((column, f"{op}.{_format_value(value)}"))
    return params


def ilike_pattern(term: str) -> str:
    """Quoted ``*term*`` pattern, safe inside an ``or=(...)`` filter."""
    escaped = term.replace("\\", "\\\\").replace('"', '\\"')
    return f'"*{escaped}*"'


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return str(body)


class SupabaseClient:
    """
    Thin async client for the BaaS.

    One instance is created per request (see ``database.get_db``) and closed
    when the request finishes.
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        anon_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url.rstrip("/")
        self.service_key = service_key
        self.anon_key = anon_key or service_key
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self) -> "SupabaseClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport helpers
    # ------------------------------------------------------------------

    def _service_headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }
        headers.update(extra)
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._http.request(method, f"{self.url}{path}", **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Supabase request failed: {method} {path}: {e}")
            raise SupabaseError(f"BaaS unreachable: {e}") from e
        if not response.is_success:
            message = _error_message(response)
            logger.warning(f"Supabase {method} {path} returned {response.status_code}: {message}")
            raise SupabaseError(message, status_code=response.status_code)
        return response

    # ------------------------------------------------------------------
    # Row API (PostgREST)
    # ------------------------------------------------------------------

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        *,
        columns: str = "*",
        order: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
        search: Optional[Tuple[Iterable[str], str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Select rows from ``table``.

        Args:
            filters: column filters, see ``build_filter_params``
            order: column to order by
            ascending: sort direction for ``order``
            limit: maximum number of rows
            search: ``(columns, term)`` for a case-insensitive substring match
                on any of the columns

        Returns:
            List of row dicts
        """
        params = [("select", columns)] + build_filter_params(filters)
        if search:
            search_columns, term = search
            pattern = ilike_pattern(term)
            clauses = ",".join(f"{column}.ilike.{pattern}" for column in search_columns)
            params.append(("or", f"({clauses})"))
        if order:
            params.append(("order", f"{order}.{'asc' if ascending else 'desc'}"))
        if limit is not None:
            params.append(("limit", str(limit)))

        response = await self._request(
            "GET", f"/rest/v1/{table}", params=params, headers=self._service_headers()
        )
        return response.json()

    async def select_one(self, table: str, filters: Dict[str, Any], *, columns: str = "*") -> Optional[Dict[str, Any]]:
        """Return the first row matching ``filters`` or None."""
        rows = await self.select(table, filters, columns=columns, limit=1)
        return rows[0] if rows else None

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one row and return it as stored."""
        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            json=row,
            headers=self._service_headers(Prefer="return=representation"),
        )
        rows = response.json()
        return rows[0] if isinstance(rows, list) else rows

    async def update(self, table: str, values: Dict[str, Any], filters: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update rows matching ``filters``; returns the first updated row or None."""
        response = await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=build_filter_params(filters),
            json=values,
            headers=self._service_headers(Prefer="return=representation"),
        )
        rows = response.json()
        return rows[0] if rows else None

    async def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        """Exact row count for ``filters``."""
        response = await self._request(
            "HEAD",
            f"/rest/v1/{table}",
            params=[("select", "*")] + build_filter_params(filters),
            headers=self._service_headers(Prefer="count=exact"),
        )
        content_range = response.headers.get("content-range", "")
        _, _, total = content_range.partition("/")
        try:
            return int(total)
        except ValueError:
            return 0

    # ------------------------------------------------------------------
    # Auth API (GoTrue)
    # ------------------------------------------------------------------

    async def create_auth_user(self, email: str, password: str) -> Dict[str, Any]:
        """Create a pre-confirmed auth user (admin API)."""
        response = await self._request(
            "POST",
            "/auth/v1/admin/users",
            json={"email": email, "password": password, "email_confirm": True},
            headers=self._service_headers(),
        )
        return response.json()

    async def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        """Password grant; returns the session (``access_token``, ``user``)."""
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers={"apikey": self.anon_key, "Content-Type": "application/json"},
        )
        return response.json()

    async def get_auth_user(self, access_token: str) -> Optional[Dict[str, Any]]:
        """Resolve a user access token; None if the token is invalid or expired."""
        try:
            response = await self._request(
                "GET",
                "/auth/v1/user",
                headers={"apikey": self.anon_key, "Authorization": f"Bearer {access_token}"},
            )
        except SupabaseError as e:
            if e.status_code in (401, 403, 404):
                return None
            raise
        return response.json()

    async def update_auth_user(self, user_id: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request(
            "PUT",
            f"/auth/v1/admin/users/{user_id}",
            json=attributes,
            headers=self._service_headers(),
        )
        return response.json()

    async def delete_auth_user(self, user_id: str) -> None:
        await self._request(
            "DELETE", f"/auth/v1/admin/users/{user_id}", headers=self._service_headers()
        )
