"""Async HTTP client wrapper with timeout configuration."""

from typing import Any, Dict, Optional

import httpx


class AsyncHTTPClient:
    """
    Async HTTP client wrapper around httpx.AsyncClient.

    Provides:
    - Configurable connect and read timeouts
    - Optional base URL and default headers for one backend
    - Connection pooling via httpx
    - Context manager for proper lifecycle management
    """

    def __init__(
        self,
        base_url: str = "",
        headers: Optional[Dict[str, str]] = None,
        connect_timeout: float = 3.0,
        read_timeout: float = 8.0,
        write_timeout: float = 5.0,
        pool_timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: Prefix for relative request URLs
            headers: Headers sent with every request
            connect_timeout: Connection timeout in seconds
            read_timeout: Read timeout in seconds
            write_timeout: Write timeout in seconds
            pool_timeout: Pool timeout in seconds
            transport: Custom transport (mock or ASGI transport in tests)
        """
        self.base_url = base_url
        self.headers = dict(headers or {})
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.pool_timeout = pool_timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Enter async context manager."""
        timeout = httpx.Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.write_timeout,
            pool=self.pool_timeout
        )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=timeout,
            transport=self.transport
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._client

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Perform GET request.

        Args:
            url: URL to request
            params: Query parameters
            **kwargs: Additional arguments for httpx

        Returns:
            HTTP response
        """
        return await self._require_client().get(url, params=params, **kwargs)

    async def post(
        self,
        url: str,
        json: Optional[Any] = None,
        **kwargs
    ) -> httpx.Response:
        """Perform POST request with a JSON body."""
        return await self._require_client().post(url, json=json, **kwargs)

    async def delete(
        self,
        url: str,
        json: Optional[Any] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Perform DELETE request.

        httpx's ``delete()`` takes no body, so a JSON body goes through
        ``request()``.
        """
        client = self._require_client()
        if json is None:
            return await client.delete(url, **kwargs)
        return await client.request("DELETE", url, json=json, **kwargs)
