from overlay_studio.client.api import OverlayApiClient
from overlay_studio.client.store import OverlayStore, StreamStore
from overlay_studio.client.sync import OverlaySync, StreamSettingsSync

__all__ = [
    "OverlayApiClient",
    "OverlayStore",
    "StreamStore",
    "OverlaySync",
    "StreamSettingsSync",
]
