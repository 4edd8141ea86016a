from typing import Optional

from pydantic import Field

from overlay_studio.schemas.overlay import UtcDatetime, WireModel


class StreamSettings(WireModel):
    id: Optional[str] = None        # None for the built-in defaults
    rtsp_url: str = Field(min_length=1)
    name: str
    description: Optional[str] = None
    auto_play: bool
    show_controls: bool
    default_volume: float = Field(ge=0, le=1)
    last_updated: Optional[UtcDatetime] = None
