"""Supabase client for pipeline and deployment storage."""

from typing import Any, Optional
import httpx
import structlog

from pipelinehub.config import get_settings

logger = structlog.get_logger()


class SupabaseClient:
    """Client for Supabase REST API operations."""

    def __init__(
        self,
        url: Optional[str] = None,
        service_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.url = url or settings.supabase_url
        self.service_key = service_key or (
            settings.supabase_service_key.get_secret_value()
            if settings.supabase_service_key
            else None
        )
        self.timeout = timeout or settings.store_timeout_seconds
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        """Check if Supabase is configured."""
        return bool(self.url and self.service_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self.url}/rest/v1",
                headers={
                    "apikey": self.service_key,
                    "Authorization": f"Bearer {self.service_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Optional[dict] = None,
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> dict[str, Any]:
        """Make a request to Supabase REST API.

        Args:
            path: REST API path (e.g., "/pipelines")
            method: HTTP method
            body: Request body for POST/PATCH
            headers: Additional headers
            params: Query parameters (PostgREST filters such as {"id": "eq.1"})

        Returns:
            {"data": ..., "error": ..., "status": ...}
        """
        if not self.is_configured:
            return {"data": None, "error": "Supabase not configured", "status": None}

        client = await self._get_client()

        request_headers = {"Prefer": "return=representation"}
        if headers:
            request_headers.update(headers)

        try:
            response = await client.request(
                method=method,
                url=path,
                json=body if body else None,
                headers=request_headers,
                params=params,
            )

            if not response.is_success:
                error_text = response.text
                logger.error(
                    "Supabase request failed",
                    path=path,
                    status=response.status_code,
                    error=error_text,
                )
                return {"data": None, "error": error_text, "status": response.status_code}

            data = response.json() if response.text else None
            return {"data": data, "error": None, "status": response.status_code}

        except Exception as e:
            logger.exception("Supabase request error", path=path, error=str(e))
            return {"data": None, "error": str(e), "status": None}

    # Convenience methods
    async def insert(self, table: str, data: dict) -> dict[str, Any]:
        """Insert a record."""
        return await self.request(f"/{table}", method="POST", body=data)

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[dict] = None,
        limit: Optional[int] = None,
    ) -> dict[str, Any]:
        """Select records with optional filters."""
        params: dict[str, Any] = {"select": columns}
        if filters:
            params.update(filters)
        if limit is not None:
            params["limit"] = limit
        return await self.request(f"/{table}", params=params)

    async def update(
        self, table: str, filters: dict, data: dict
    ) -> dict[str, Any]:
        """Update records matching filters."""
        return await self.request(f"/{table}", method="PATCH", body=data, params=filters)


def is_conflict(result: dict[str, Any]) -> bool:
    """True when a failed write hit a unique constraint."""
    if result.get("status") == 409:
        return True
    return "23505" in str(result.get("error") or "")


# Global instance
_supabase_client: Optional[SupabaseClient] = None


def get_supabase_client() -> SupabaseClient:
    """Get or create global Supabase client."""
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = SupabaseClient()
    return _supabase_client


async def close_supabase_client() -> None:
    """Close and drop the global client."""
    global _supabase_client
    if _supabase_client is not None:
        await _supabase_client.close()
        _supabase_client = None
