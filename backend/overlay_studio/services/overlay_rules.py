"""
Defaulting and validation rules for overlays.

These are pure functions over plain wire-shaped dicts and the pydantic
overlay models. The database layer and the client store both go through
them, so a partial patch merges the same way on either side:

  - `position`, `size` and `style` merge key by key
  - every other field is replaced wholesale
  - `type` can never change once an overlay exists
"""

import copy
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from overlay_studio.core.errors import (
    ImmutableFieldChange,
    InvalidField,
    InvalidType,
    MissingField,
    describe_validation_error,
)
from overlay_studio.schemas.overlay import (
    MODELS_BY_TYPE,
    OVERLAY_TYPES,
    SERVER_MANAGED_FIELDS,
    OverlayBase,
)

NESTED_FIELDS = ("position", "size", "style")

TEXT_DEFAULTS: dict[str, Any] = {
    "content": "Text Overlay",
    "position": {"x": 10, "y": 10},
    "size": {"width": 200, "height": 80},
    "zIndex": 1,
    "visible": True,
    "style": {
        "fontFamily": "Arial",
        "fontSize": 16,
        "fontWeight": "normal",
        "color": "#ffffff",
        "backgroundColor": "transparent",
        "opacity": 1,
        "textAlign": "left",
    },
}

IMAGE_DEFAULTS: dict[str, Any] = {
    "imageUrl": "",
    "alt": "Image Overlay",
    "position": {"x": 10, "y": 10},
    "size": {"width": 200, "height": 150},
    "zIndex": 1,
    "visible": True,
    "style": {
        "opacity": 1,
        "border": "none",
        "borderRadius": 0,
    },
}

DEFAULTS_BY_TYPE: dict[str, dict[str, Any]] = {
    "text": TEXT_DEFAULTS,
    "image": IMAGE_DEFAULTS,
}


def _wire_key(key: str) -> str:
    return to_camel(key) if "_" in key.lstrip("_") else key


def normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Accept snake_case keys from Python callers alongside camelCase ones."""
    out: dict[str, Any] = {}
    for key, value in data.items():
        wire_key = _wire_key(key)
        if wire_key in NESTED_FIELDS and isinstance(value, dict):
            value = {_wire_key(k): v for k, v in value.items()}
        out[wire_key] = value
    return out


def merge_fields(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Merge `patch` over `base` without touching either."""
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        if (
            key in NESTED_FIELDS
            and isinstance(value, dict)
            and isinstance(merged.get(key), dict)
        ):
            merged[key] = {**merged[key], **copy.deepcopy(value)}
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _strip_server_managed(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in SERVER_MANAGED_FIELDS}


def _validate(data: dict[str, Any], overlay_type: str) -> OverlayBase:
    model = MODELS_BY_TYPE[overlay_type]
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise InvalidField(describe_validation_error(exc, "overlay")) from exc


def validate_and_fill_defaults(data: Any) -> OverlayBase:
    """
    Turn a creation payload into a complete overlay of the right variant.

    Raises MissingField when `type` or `name` is absent or blank,
    InvalidType for an unknown variant and InvalidField for anything
    the variant model rejects (ranges, enums, foreign fields).
    """
    if not isinstance(data, dict):
        raise InvalidField("Overlay payload must be a JSON object")

    data = normalize_keys(data)
    overlay_type = data.get("type")
    name = data.get("name")

    if not overlay_type or name is None or (isinstance(name, str) and not name.strip()):
        raise MissingField("Missing required fields: type and name")

    if overlay_type not in OVERLAY_TYPES:
        raise InvalidType('Invalid overlay type. Must be "text" or "image"')

    payload = _strip_server_managed(data)
    # null means "use the default"
    payload = {k: v for k, v in payload.items() if v is not None}
    if isinstance(name, str):
        payload["name"] = name.strip()

    merged = merge_fields(DEFAULTS_BY_TYPE[overlay_type], payload)
    return _validate(merged, overlay_type)


def apply_update(existing: OverlayBase, patch: Any) -> OverlayBase:
    """
    Return a new overlay with `patch` merged over `existing`.

    `existing` is left untouched, including when the patch is rejected.
    """
    if not isinstance(patch, dict):
        raise InvalidField("Overlay update must be a JSON object")

    patch = normalize_keys(patch)
    if "type" in patch and patch["type"] != existing.type:
        raise ImmutableFieldChange("Cannot change overlay type")

    changes = _strip_server_managed(patch)
    if isinstance(changes.get("name"), str):
        changes["name"] = changes["name"].strip()

    merged = merge_fields(existing.to_wire(), changes)
    return _validate(merged, existing.type)
