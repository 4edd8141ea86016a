"""
Async HTTP client for the overlay API.

Turns every outcome of a request into either a typed value or one of the
errors from `overlay_studio.core.errors`:

  - network failure, non-JSON body, unexpected shape  -> TransportError
  - error status                                      -> the error named by
                                                         the body's `error` code
"""

import logging
from typing import Any, List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from overlay_studio.core.config import get_settings
from overlay_studio.core.errors import ERRORS_BY_CODE, NotFound, OverlayError, TransportError
from overlay_studio.schemas.overlay import OverlayBase, overlay_adapter, overlay_list_adapter
from overlay_studio.schemas.stream_settings import StreamSettings

logger = logging.getLogger(__name__)
settings = get_settings()

NETWORK_ERROR_MESSAGE = "Could not reach the overlay server"
INVALID_FORMAT_MESSAGE = "Server returned an invalid response format"
UNEXPECTED_SHAPE_MESSAGE = "Server returned an unexpected response"

stream_settings_adapter: TypeAdapter[StreamSettings] = TypeAdapter(StreamSettings)


def error_from_response(status_code: int, payload: Any) -> OverlayError:
    message = code = None
    if isinstance(payload, dict):
        message = payload.get("message")
        code = payload.get("error")

    error_cls = ERRORS_BY_CODE.get(code) if isinstance(code, str) else None
    if error_cls is None:
        error_cls = NotFound if status_code == 404 else TransportError
    return error_cls(message or f"Request failed with status {status_code}")


class OverlayApiClient:
    """
    Thin wrapper around `httpx.AsyncClient`.

    Pass `client` to reuse an existing AsyncClient (its base_url must point
    at the API prefix, e.g. http://host/api/v1); otherwise one is created
    for `base_url` and closed by `aclose()`.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.OVERLAY_API_URL
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "OverlayApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise TransportError(NETWORK_ERROR_MESSAGE) from exc

        if response.status_code == 204:
            return None

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            # Probably an HTML error page from a proxy
            logger.error("Non-JSON response from %s %s: %s", method, path, response.text[:200])
            raise TransportError(INVALID_FORMAT_MESSAGE)

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(INVALID_FORMAT_MESSAGE) from exc

        if response.is_error:
            raise error_from_response(response.status_code, payload)
        return payload

    @staticmethod
    def _parse(adapter, payload: Any):
        try:
            return adapter.validate_python(payload)
        except PydanticValidationError as exc:
            logger.error("Unexpected response shape: %s", exc)
            raise TransportError(UNEXPECTED_SHAPE_MESSAGE) from exc

    async def list_overlays(self) -> List[OverlayBase]:
        payload = await self._request("GET", "/overlays")
        return self._parse(overlay_list_adapter, payload)

    async def get_overlay(self, overlay_id: str) -> OverlayBase:
        payload = await self._request("GET", f"/overlays/{overlay_id}")
        return self._parse(overlay_adapter, payload)

    async def create_overlay(self, data: dict[str, Any]) -> OverlayBase:
        payload = await self._request("POST", "/overlays", json=data)
        return self._parse(overlay_adapter, payload)

    async def update_overlay(self, overlay_id: str, changes: dict[str, Any]) -> OverlayBase:
        payload = await self._request("PUT", f"/overlays/{overlay_id}", json=changes)
        return self._parse(overlay_adapter, payload)

    async def delete_overlay(self, overlay_id: str) -> None:
        await self._request("DELETE", f"/overlays/{overlay_id}")

    async def get_stream_settings(self) -> StreamSettings:
        payload = await self._request("GET", "/stream-settings")
        return self._parse(stream_settings_adapter, payload)

    async def save_stream_settings(self, data: dict[str, Any]) -> StreamSettings:
        payload = await self._request("POST", "/stream-settings", json=data)
        return self._parse(stream_settings_adapter, payload)
