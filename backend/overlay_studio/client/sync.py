"""
Keeps the client stores and the API in step.

Per action:

  fetch   list() -> replace_all; on failure the store keeps what it had
  create  create() -> refresh; nothing is inserted before the server answers
  update  patch the store first, then update() -> refresh; a failed update
          keeps the optimistic state unless rollback_on_failure is set
  delete  delete() -> remove + refresh; on failure the overlay stays

Every failure lands in `store.error`. Nothing is retried, and requests for
the same overlay are not sequenced: whichever refresh resolves last wins.
"""

import logging
from typing import Any, Optional

from overlay_studio.client.api import OverlayApiClient
from overlay_studio.client.store import OverlayStore, StreamStore
from overlay_studio.core.config import get_settings
from overlay_studio.core.errors import OverlayError
from overlay_studio.schemas.overlay import OverlayBase
from overlay_studio.schemas.stream_settings import StreamSettings

logger = logging.getLogger(__name__)
settings = get_settings()

PLACEHOLDER_IMAGE_URL = "https://via.placeholder.com/200x150"


class OverlaySync:
    def __init__(
        self,
        store: OverlayStore,
        api: OverlayApiClient,
        *,
        rollback_on_failure: Optional[bool] = None,
    ):
        self.store = store
        self.api = api
        if rollback_on_failure is None:
            rollback_on_failure = settings.ROLLBACK_ON_FAILED_UPDATE
        self.rollback_on_failure = rollback_on_failure
        self._mounted = False

    def _fail(self, action: str, exc: OverlayError) -> None:
        logger.error("Error %s: %s", action, exc.message)
        self.store.set_error(exc.message)

    async def mount(self) -> None:
        """First fetch when the editor comes up. Later calls do nothing."""
        if self._mounted:
            return
        self._mounted = True
        await self.fetch_overlays()

    async def fetch_overlays(self) -> bool:
        self.store.set_loading(True)
        self.store.set_error(None)
        try:
            overlays = await self.api.list_overlays()
        except OverlayError as exc:
            self._fail("fetching overlays", exc)
            return False
        finally:
            self.store.set_loading(False)

        self.store.replace_all(overlays)
        return True

    async def create_overlay(self, data: dict[str, Any]) -> Optional[OverlayBase]:
        self.store.set_error(None)
        try:
            created = await self.api.create_overlay(data)
        except OverlayError as exc:
            self._fail("creating overlay", exc)
            return None

        # The id only exists now, so pick it up with the rest of the list
        await self.fetch_overlays()
        return created

    def build_text_overlay(self) -> dict[str, Any]:
        n = len(self.store.overlays) + 1
        return {
            "name": f"Text Overlay {n}",
            "type": "text",
            "content": "New Text Overlay",
            "position": {"x": 50, "y": 50},
            "size": {"width": 200, "height": 80},
            "zIndex": n,
            "visible": True,
            "style": {
                "fontFamily": "Arial",
                "fontSize": 24,
                "fontWeight": "normal",
                "color": "#ffffff",
                "backgroundColor": "rgba(0,0,0,0.5)",
                "opacity": 1,
                "textAlign": "center",
            },
        }

    def build_image_overlay(self) -> dict[str, Any]:
        n = len(self.store.overlays) + 1
        return {
            "name": f"Image Overlay {n}",
            "type": "image",
            "imageUrl": PLACEHOLDER_IMAGE_URL,
            "alt": "Sample image overlay",
            "position": {"x": 50, "y": 50},
            "size": {"width": 200, "height": 150},
            "zIndex": n,
            "visible": True,
            "style": {
                "opacity": 1,
                "border": "none",
                "borderRadius": 0,
            },
        }

    async def create_text_overlay(self) -> Optional[OverlayBase]:
        return await self.create_overlay(self.build_text_overlay())

    async def create_image_overlay(self) -> Optional[OverlayBase]:
        return await self.create_overlay(self.build_image_overlay())

    async def update_overlay(
        self, overlay_id: str, changes: dict[str, Any]
    ) -> Optional[OverlayBase]:
        self.store.set_error(None)
        previous = self.store.get(overlay_id)

        try:
            self.store.patch(overlay_id, changes)
        except OverlayError as exc:
            # Rejected locally, the server would say the same
            self._fail("updating overlay", exc)
            return None

        try:
            updated = await self.api.update_overlay(overlay_id, changes)
        except OverlayError as exc:
            self._fail("updating overlay", exc)
            if self.rollback_on_failure and previous is not None:
                self.store.restore(previous)
            return None

        await self.fetch_overlays()
        return updated

    async def move_overlay(self, overlay_id: str, x: float, y: float) -> Optional[OverlayBase]:
        """Drag-stop from the rendering surface."""
        return await self.update_overlay(overlay_id, {"position": {"x": x, "y": y}})

    async def resize_overlay(
        self, overlay_id: str, width: float, height: float
    ) -> Optional[OverlayBase]:
        """Resize-stop from the rendering surface."""
        return await self.update_overlay(
            overlay_id, {"size": {"width": width, "height": height}}
        )

    async def delete_overlay(self, overlay_id: str) -> bool:
        self.store.set_error(None)
        try:
            await self.api.delete_overlay(overlay_id)
        except OverlayError as exc:
            self._fail("deleting overlay", exc)
            return False

        self.store.remove(overlay_id)
        await self.fetch_overlays()
        return True


class StreamSettingsSync:
    def __init__(self, store: StreamStore, api: OverlayApiClient):
        self.store = store
        self.api = api
        self._mounted = False

    def _fail(self, action: str, exc: OverlayError) -> None:
        logger.error("Error %s: %s", action, exc.message)
        self.store.set_error(exc.message)

    async def mount(self) -> None:
        if self._mounted:
            return
        self._mounted = True
        await self.fetch_settings()

    async def fetch_settings(self) -> Optional[StreamSettings]:
        self.store.set_loading(True)
        self.store.set_error(None)
        try:
            value = await self.api.get_stream_settings()
        except OverlayError as exc:
            self._fail("fetching stream settings", exc)
            return None
        finally:
            self.store.set_loading(False)

        self.store.apply_settings(value)
        return value

    async def save_settings(self, changes: dict[str, Any]) -> Optional[StreamSettings]:
        """Save `changes`, filling the rest from what the player shows now."""
        self.store.set_error(None)
        body = {
            "rtspUrl": changes.get("rtspUrl") or self.store.rtsp_url,
            "name": changes.get("name") or self.store.stream_name,
            "description": changes.get("description") or self.store.stream_description,
            "autoPlay": changes.get("autoPlay", True),
            "showControls": changes.get("showControls", True),
            "defaultVolume": changes.get("defaultVolume", self.store.volume),
        }
        try:
            value = await self.api.save_stream_settings(body)
        except OverlayError as exc:
            self._fail("saving stream settings", exc)
            return None

        self.store.set_stream_info(value.name, value.description or "")
        return value

    async def save_current_settings(self) -> Optional[StreamSettings]:
        return await self.save_settings(
            {
                "rtspUrl": self.store.rtsp_url,
                "name": self.store.stream_name,
                "description": self.store.stream_description,
                "autoPlay": self.store.is_playing,
                "defaultVolume": self.store.volume,
            }
        )
