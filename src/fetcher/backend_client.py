"""JSON calls against one external backend with retries and error mapping."""

from typing import Any, Dict, Optional

import httpx

from src.fetcher.http_client import AsyncHTTPClient
from src.fetcher.retry_handler import RetryHandler
from src.models.errors import BackendUnavailable
from src.monitoring.logger import StructuredLogger


class BackendClient:
    """
    Thin JSON client for a single backend.

    Every failure mode (transport error, timeout, non-2xx status, body that is
    not a JSON object) surfaces as BackendUnavailable so callers only have
    one exception to degrade on.
    """

    def __init__(
        self,
        name: str,
        http_client: AsyncHTTPClient,
        retry_handler: Optional[RetryHandler] = None,
        logger: Optional[StructuredLogger] = None
    ):
        self.name = name
        self.http_client = http_client
        self.retry_handler = retry_handler or RetryHandler(max_retries=0)
        self.logger = logger
        if logger and self.retry_handler.on_retry is None:
            self.retry_handler.on_retry = self._log_retry

    def _log_retry(self, attempt: int, delay: float, error: Exception) -> None:
        self.logger.backend_retry(self.name, attempt, delay, str(error))

    async def get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        return await self._call("GET", path, params=params, headers=headers)

    async def post_json(self, path: str, body: Any, headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        return await self._call("POST", path, json=body, headers=headers)

    async def post(self, path: str, body: Any, headers: Optional[Dict[str, str]] = None) -> None:
        """POST whose response body is ignored."""
        await self._call("POST", path, json=body, headers=headers, expect_body=False)

    async def delete(self, path: str, body: Any = None, headers: Optional[Dict[str, str]] = None) -> None:
        await self._call("DELETE", path, json=body, headers=headers, expect_body=False)

    async def _call(self, method: str, path: str, expect_body: bool = True, **kwargs) -> Dict[str, Any]:
        try:
            response = await self.retry_handler.execute(self._send, method, path, **kwargs)
        except httpx.HTTPStatusError as e:
            raise BackendUnavailable(
                self.name,
                f"{method} {path} returned {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.TimeoutException as e:
            raise BackendUnavailable(self.name, f"{method} {path} timed out") from e
        except httpx.HTTPError as e:
            raise BackendUnavailable(self.name, f"{method} {path} failed: {e}") from e

        if not expect_body:
            return {}

        try:
            data = response.json()
        except ValueError as e:
            raise BackendUnavailable(self.name, f"{method} {path} returned malformed JSON") from e
        if not isinstance(data, dict):
            raise BackendUnavailable(self.name, f"{method} {path} returned unexpected payload")
        return data

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        if method == "GET":
            response = await self.http_client.get(path, params=kwargs.get("params"), headers=kwargs.get("headers"))
        elif method == "POST":
            response = await self.http_client.post(path, json=kwargs.get("json"), headers=kwargs.get("headers"))
        elif method == "DELETE":
            response = await self.http_client.delete(path, json=kwargs.get("json"), headers=kwargs.get("headers"))
        else:
            raise ValueError(f"Unsupported method: {method}")
        response.raise_for_status()
        return response
