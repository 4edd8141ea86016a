"""
In-process state containers for the overlay editor UI.

Nothing in here does I/O. Every action is a synchronous state transition
followed by a notification to subscribers; the sync layer decides when the
backend gets told about it. The application root owns one `OverlayStore`
(and one `StreamStore`) and hands them to whatever renders or syncs.
"""

import logging
from typing import Any, Callable, Iterable, List, Optional, Tuple

from overlay_studio.schemas.overlay import OverlayBase
from overlay_studio.schemas.stream_settings import StreamSettings
from overlay_studio.services.overlay_rules import apply_update

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class _Observable:
    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(store)` after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)


class OverlayStore(_Observable):
    """
    Mirror of the persisted overlays plus editor-only state.

    `overlays` keeps the order of the last sync; optimistic edits replace an
    overlay in place instead of re-sorting. Overlays that have no server id
    yet are only dropped by `remove` or `replace_all`.
    """

    def __init__(self, overlays: Iterable[OverlayBase] = ()):
        super().__init__()
        self._overlays: List[OverlayBase] = list(overlays)
        self._selected_id: Optional[str] = None
        self._selected_local: Optional[OverlayBase] = None
        self.editor_open = False
        self.error: Optional[str] = None
        self.is_loading = False

    # -- reads ---------------------------------------------------------------

    @property
    def overlays(self) -> Tuple[OverlayBase, ...]:
        return tuple(self._overlays)

    @property
    def selected_overlay(self) -> Optional[OverlayBase]:
        """The selected overlay as it is now, including optimistic edits."""
        if self._selected_id is not None:
            return self.get(self._selected_id)
        if self._selected_local is not None:
            for overlay in self._overlays:
                if overlay is self._selected_local:
                    return overlay
        return None

    def get(self, overlay_id: str) -> Optional[OverlayBase]:
        index = self._index_of(overlay_id)
        return None if index is None else self._overlays[index]

    def _index_of(self, overlay_id: Optional[str]) -> Optional[int]:
        if overlay_id is None:
            return None
        for i, overlay in enumerate(self._overlays):
            if overlay.id == overlay_id:
                return i
        return None

    # -- mirrored list -------------------------------------------------------

    def replace_all(self, overlays: Iterable[OverlayBase]) -> None:
        self._overlays = list(overlays)
        self._notify()

    def add(self, overlay: OverlayBase) -> None:
        self._overlays.append(overlay)
        self._notify()

    def remove(self, overlay_id: str) -> None:
        before = len(self._overlays)
        self._overlays = [o for o in self._overlays if o.id != overlay_id]
        if len(self._overlays) != before:
            if self._selected_id == overlay_id:
                self._selected_id = None
            self._notify()

    def patch(self, overlay_id: str, changes: dict[str, Any]) -> Optional[OverlayBase]:
        """
        Merge `changes` into one overlay, same rules as the server applies.

        Unknown ids are ignored. Rejected changes raise and leave the store as is.
        """
        index = self._index_of(overlay_id)
        if index is None:
            logger.debug("patch for unknown overlay %s ignored", overlay_id)
            return None

        updated = apply_update(self._overlays[index], changes)
        self._overlays[index] = updated
        self._notify()
        return updated

    def move(self, overlay_id: str, x: float, y: float) -> Optional[OverlayBase]:
        return self.patch(overlay_id, {"position": {"x": x, "y": y}})

    def resize(self, overlay_id: str, width: float, height: float) -> Optional[OverlayBase]:
        return self.patch(overlay_id, {"size": {"width": width, "height": height}})

    def restore(self, overlay: OverlayBase) -> None:
        """Put a snapshot back where the overlay with the same id sits."""
        index = self._index_of(overlay.id)
        if index is None:
            return
        self._overlays[index] = overlay
        self._notify()

    # -- editor state (never persisted) -------------------------------------

    def select(self, overlay: Optional[OverlayBase]) -> None:
        if overlay is None:
            self._selected_id = None
            self._selected_local = None
        elif overlay.id is None:
            self._selected_id = None
            self._selected_local = overlay
        else:
            self._selected_id = overlay.id
            self._selected_local = None
        self._notify()

    def toggle_editor(self) -> None:
        self.editor_open = not self.editor_open
        self._notify()

    def set_error(self, message: Optional[str]) -> None:
        self.error = message
        self._notify()

    def set_loading(self, loading: bool) -> None:
        self.is_loading = loading
        self._notify()


class StreamStore(_Observable):
    """Player-facing state: which stream plays and how loud."""

    def __init__(self, rtsp_url: str = ""):
        super().__init__()
        self.rtsp_url = rtsp_url
        self.is_playing = False
        self.volume = 0.5
        self.is_muted = False
        self.custom_rtsp_url = ""
        self.is_custom_rtsp_url = False
        self.stream_name = "Default Stream"
        self.stream_description = ""
        self.error: Optional[str] = None
        self.is_loading = False

    def set_rtsp_url(self, url: str) -> None:
        self.rtsp_url = url
        self._notify()

    def set_playing(self, playing: bool) -> None:
        self.is_playing = playing
        self._notify()

    def set_volume(self, volume: float) -> None:
        self.volume = min(1.0, max(0.0, volume))
        self.is_muted = self.volume == 0
        self._notify()

    def toggle_mute(self) -> None:
        self.is_muted = not self.is_muted
        self._notify()

    def set_custom_rtsp_url(self, url: str) -> None:
        self.custom_rtsp_url = url
        self._notify()

    def apply_custom_url(self) -> None:
        if not self.custom_rtsp_url:
            return
        self.rtsp_url = self.custom_rtsp_url
        self.is_custom_rtsp_url = True
        self._notify()

    def set_stream_info(self, name: str, description: str) -> None:
        self.stream_name = name
        self.stream_description = description
        self._notify()

    def apply_settings(self, value: StreamSettings) -> None:
        self.rtsp_url = value.rtsp_url
        self.is_playing = value.auto_play
        self.volume = value.default_volume
        self.is_muted = value.default_volume == 0
        self.stream_name = value.name
        self.stream_description = value.description or ""
        self._notify()

    def set_error(self, message: Optional[str]) -> None:
        self.error = message
        self._notify()

    def set_loading(self, loading: bool) -> None:
        self.is_loading = loading
        self._notify()
