from datetime import datetime, timezone
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


OverlayType = Literal["text", "image"]
OVERLAY_TYPES = ("text", "image")

TextAlign = Literal["left", "center", "right"]


def _as_utc(value: datetime) -> datetime:
    # Columns hand back naive UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Serialized with a trailing Z so clients never read it as local time
UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class WireModel(BaseModel):
    # snake_case in Python, camelCase on the wire (zIndex, imageUrl, fontFamily, ...)
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        # NaN and Infinity would be stored, then sent back as null
        allow_inf_nan=False,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Position(WireModel):
    x: float
    y: float


class Size(WireModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class TextStyle(WireModel):
    font_family: str
    font_size: float = Field(gt=0)
    font_weight: str
    color: str
    background_color: str           # may be "transparent"
    opacity: float = Field(ge=0, le=1)
    text_align: TextAlign


class ImageStyle(WireModel):
    opacity: float = Field(ge=0, le=1)
    border: str                     # free-form CSS border, e.g. "2px solid #fff"
    border_radius: float = Field(ge=0)


class OverlayBase(WireModel):
    # Server-managed: None until the overlay has been stored
    id: Optional[str] = None
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None

    name: str = Field(min_length=1)
    position: Position
    size: Size
    z_index: int
    visible: bool


class TextOverlay(OverlayBase):
    type: Literal["text"] = "text"
    content: str
    style: TextStyle


class ImageOverlay(OverlayBase):
    type: Literal["image"] = "image"
    image_url: str                  # resolved lazily by the renderer, never fetched here
    alt: str
    style: ImageStyle


Overlay = Annotated[Union[TextOverlay, ImageOverlay], Field(discriminator="type")]

overlay_adapter: TypeAdapter[Overlay] = TypeAdapter(Overlay)
overlay_list_adapter: TypeAdapter[List[Overlay]] = TypeAdapter(List[Overlay])

MODELS_BY_TYPE: dict[str, type[OverlayBase]] = {
    "text": TextOverlay,
    "image": ImageOverlay,
}

# Keys a client may send but the server alone decides
SERVER_MANAGED_FIELDS = ("id", "createdAt", "updatedAt")


class DeleteResponse(BaseModel):
    message: str
