from __future__ import annotations

import math
from numbers import Integral, Real

from darkroom.domain.entities.operation import (
    AdjustmentParams,
    CropParams,
    CropRect,
    EditOperation,
    FilterKind,
    FilterParams,
    TransformKind,
    TransformParams,
)
from darkroom.domain.errors import InvalidOperation

MAX_BLUR_RADIUS = 100.0

# field -> (low, high), inclusive
ADJUSTMENT_RANGES: dict[str, tuple[float, float]] = {
    "brightness": (0.0, 2.0),
    "contrast": (0.0, 2.0),
    "saturation": (0.0, 2.0),
    "hue": (-180, 180),
    "gamma": (0.1, 3.0),
}


def _require_number(value: object, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(float(value)):
        raise InvalidOperation(f"{field} must be a finite number, got {value!r}", field=field)
    return float(value)


def _require_int(value: object, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise InvalidOperation(f"{field} must be an integer, got {value!r}", field=field)
    return int(value)


def _check_range(value: float, field: str, low: float, high: float) -> None:
    if value < low or value > high:
        raise InvalidOperation(
            f"{field} must be between {low} and {high}, got {value}",
            field=field,
            bound=f"[{low}, {high}]",
        )


def _validate_filter(params: FilterParams) -> None:
    if not isinstance(params.kind, FilterKind):
        raise InvalidOperation(f"Unknown filter kind: {params.kind!r}", field="kind")
    intensity = _require_number(params.intensity, "intensity")
    _check_range(intensity, "intensity", 0.0, 1.0)
    if params.kind is FilterKind.BLUR:
        if params.radius is None:
            raise InvalidOperation("Blur filter requires a radius", field="radius", bound="> 0")
        radius = _require_number(params.radius, "radius")
        if radius <= 0.0 or radius > MAX_BLUR_RADIUS:
            raise InvalidOperation(
                f"Blur radius must be in (0, {MAX_BLUR_RADIUS}], got {radius}",
                field="radius",
                bound=f"(0, {MAX_BLUR_RADIUS}]",
            )
    elif params.radius is not None:
        raise InvalidOperation(
            f"radius is only valid for the blur filter, not {params.kind.value}", field="radius"
        )


def _validate_adjustment(params: AdjustmentParams) -> None:
    present = params.present_fields()
    if not present:
        raise InvalidOperation(
            "Adjustment requires at least one of: " + ", ".join(ADJUSTMENT_RANGES),
            field="adjustment",
        )
    for name, value in present.items():
        low, high = ADJUSTMENT_RANGES[name]
        number = _require_int(value, name) if name == "hue" else _require_number(value, name)
        _check_range(number, name, low, high)


def _validate_crop(params: CropParams, image_size: tuple[int, int] | None) -> None:
    rect = params.rect
    x = _require_int(rect.x, "x")
    y = _require_int(rect.y, "y")
    width = _require_int(rect.width, "width")
    height = _require_int(rect.height, "height")
    if x < 0 or y < 0:
        raise InvalidOperation(
            f"Crop origin cannot be negative: x={x}, y={y}",
            field="x" if x < 0 else "y",
            bound=">= 0",
        )
    if width < 1:
        raise InvalidOperation(f"Crop width must be at least 1, got {width}", field="width", bound=">= 1")
    if height < 1:
        raise InvalidOperation(f"Crop height must be at least 1, got {height}", field="height", bound=">= 1")
    if image_size is not None:
        img_w, img_h = image_size
        if x + width > img_w:
            raise InvalidOperation(
                f"Crop exceeds image width: x={x} + width={width} > {img_w}",
                field="width",
                bound=f"x + width <= {img_w}",
            )
        if y + height > img_h:
            raise InvalidOperation(
                f"Crop exceeds image height: y={y} + height={height} > {img_h}",
                field="height",
                bound=f"y + height <= {img_h}",
            )
    if params.aspect_ratio is not None:
        ratio = _require_number(params.aspect_ratio, "aspect_ratio")
        if ratio <= 0.0:
            raise InvalidOperation(
                f"aspect_ratio must be positive, got {ratio}", field="aspect_ratio", bound="> 0"
            )
        if abs(width - height * ratio) > 1.0:
            raise InvalidOperation(
                f"Crop {width}x{height} does not match locked aspect ratio {ratio:.4f}",
                field="aspect_ratio",
                bound="|width - height * aspect_ratio| <= 1",
            )


def validate_operation(op: EditOperation, image_size: tuple[int, int] | None = None) -> None:
    """Check an operation's payload before it is accepted.

    Args:
        op: The operation to check
        image_size: (width, height) of the image the operation will be applied
            to. Crop bounds are only checked when this is given.

    Raises:
        InvalidOperation: naming the offending field and the violated bound
    """
    if not isinstance(op.id, str) or not op.id.strip():
        raise InvalidOperation("Operation id must be a non-empty string", field="id")

    params = op.params
    if isinstance(params, FilterParams):
        _validate_filter(params)
    elif isinstance(params, AdjustmentParams):
        _validate_adjustment(params)
    elif isinstance(params, TransformParams):
        if not isinstance(params.kind, TransformKind):
            raise InvalidOperation(f"Unknown transform kind: {params.kind!r}", field="kind")
    elif isinstance(params, CropParams):
        _validate_crop(params, image_size)
    else:
        raise InvalidOperation(f"Unknown operation params: {type(params).__name__}", field="params")


def crop_rect_for_aspect_ratio(
    width: int, height: int, ratio: float, from_center: bool = True
) -> CropRect:
    """Largest rectangle with the given width/height ratio inside an image."""
    ratio = _require_number(ratio, "aspect_ratio")
    if ratio <= 0.0:
        raise InvalidOperation(
            f"aspect_ratio must be positive, got {ratio}", field="aspect_ratio", bound="> 0"
        )
    if width / height > ratio:
        # wider than requested: trim width
        crop_w, crop_h = max(1, min(width, int(height * ratio))), height
    else:
        crop_w, crop_h = width, max(1, min(height, int(width / ratio)))
    if from_center:
        return CropRect(x=(width - crop_w) // 2, y=(height - crop_h) // 2, width=crop_w, height=crop_h)
    return CropRect(x=0, y=0, width=crop_w, height=crop_h)
