"""Minimal client for the hosted database's REST, RPC and auth endpoints.

Talks PostgREST over HTTP with the service-role key, which bypasses
row-level security. Only the calls the edge functions need are provided.
"""

from typing import Any, Optional

import httpx

from ..config.settings import get_settings
from ..utils.logging import get_logger
from .exceptions import RecordNotFoundError, SupabaseError, UnauthorizedError

logger = get_logger(__name__)

# Makes PostgREST return a single object, or 406 when no row matches
SINGLE_OBJECT = "application/vnd.pgrst.object+json"


def _filter_value(value: Any) -> str:
    """Encode a Python value as a PostgREST filter expression."""
    if value is None:
        return "is.null"
    if isinstance(value, (list, tuple, set)):
        return f"in.({','.join(str(v) for v in value)})"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


class SupabaseClient:
    """Service-role client for the hosted database."""

    def __init__(
        self,
        url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the client.

        Args:
            url: Project URL (default from settings)
            service_role_key: Service credential (default from settings)
            timeout: Request timeout in seconds (default from settings)
            client: Preconfigured httpx client, mainly for tests
        """
        settings = get_settings()

        self.url = (url or settings.supabase.url).rstrip("/")
        self.service_role_key = service_role_key or settings.supabase.service_role_key
        self.timeout = timeout or settings.supabase.timeout

        self._client = client or httpx.Client(timeout=self.timeout)

    def close(self) -> None:
        self._client.close()

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
            "Content-Type": "application/json",
        }
        headers.update(extra)
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, f"{self.url}{path}", **kwargs)
        except httpx.TimeoutException:
            raise SupabaseError(f"{method} {path} timed out")
        except httpx.HTTPError as e:
            raise SupabaseError(f"{method} {path} failed: {e}")

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or body.get("msg") or response.text or f"HTTP {response.status_code}"
        raise SupabaseError(message, status_code=response.status_code, code=body.get("code"))

    def select(self, table: str, columns: str = "*", **filters: Any) -> list[dict[str, Any]]:
        """Rows of ``table`` matching every filter (column=value)."""
        params = {"select": columns}
        params.update({column: _filter_value(value) for column, value in filters.items()})

        response = self._request("GET", f"/rest/v1/{table}", params=params, headers=self._headers())
        self._raise_for_error(response)
        return response.json()

    def select_single(self, table: str, columns: str = "*", **filters: Any) -> dict[str, Any]:
        """Exactly one row of ``table``.

        Raises:
            RecordNotFoundError: If no row matched
            SupabaseError: On any other failure
        """
        params = {"select": columns}
        params.update({column: _filter_value(value) for column, value in filters.items()})

        response = self._request(
            "GET",
            f"/rest/v1/{table}",
            params=params,
            headers=self._headers(Accept=SINGLE_OBJECT),
        )
        if response.status_code == 406:
            raise RecordNotFoundError(table)
        self._raise_for_error(response)
        return response.json()

    def select_optional(self, table: str, columns: str = "*", **filters: Any) -> Optional[dict[str, Any]]:
        """Like :meth:`select_single` but returns None when no row matched."""
        try:
            return self.select_single(table, columns, **filters)
        except RecordNotFoundError:
            return None

    def insert(self, table: str, row: dict[str, Any]) -> None:
        response = self._request(
            "POST",
            f"/rest/v1/{table}",
            json=row,
            headers=self._headers(Prefer="return=minimal"),
        )
        self._raise_for_error(response)

    def update(self, table: str, values: dict[str, Any], **filters: Any) -> None:
        """Update the rows of ``table`` matching every filter."""
        if not filters:
            raise ValueError("Refusing to update without filters")
        params = {column: _filter_value(value) for column, value in filters.items()}

        response = self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=params,
            json=values,
            headers=self._headers(Prefer="return=minimal"),
        )
        self._raise_for_error(response)

    def rpc(self, function: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Call a database-side function and return its JSON result."""
        response = self._request(
            "POST",
            f"/rest/v1/rpc/{function}",
            json=params or {},
            headers=self._headers(),
        )
        self._raise_for_error(response)
        return response.json()

    def get_user(self, access_token: str) -> dict[str, Any]:
        """Resolve a user's access token to their auth record.

        Raises:
            UnauthorizedError: If the token is rejected
        """
        response = self._request(
            "GET",
            "/auth/v1/user",
            headers={
                "apikey": self.service_role_key,
                "Authorization": f"Bearer {access_token}",
            },
        )
        if response.status_code in (401, 403):
            try:
                details = response.json().get("msg") or response.text
            except (ValueError, AttributeError):
                details = response.text
            raise UnauthorizedError("Unauthorized", details=details)
        self._raise_for_error(response)

        user = response.json()
        if not user or not user.get("id"):
            raise UnauthorizedError("Unauthorized", details="No user for token")
        return user
