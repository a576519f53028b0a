from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Union


class OperationKind(str, Enum):
    FILTER = "Filter"
    ADJUSTMENT = "Adjustment"
    TRANSFORM = "Transform"
    CROP = "Crop"


class FilterKind(str, Enum):
    GRAYSCALE = "grayscale"
    SEPIA = "sepia"
    INVERT = "invert"
    BLUR = "blur"
    SHARPEN = "sharpen"


class TransformKind(str, Enum):
    # Rotations are clockwise
    ROTATE_90 = "rotate90"
    ROTATE_180 = "rotate180"
    ROTATE_270 = "rotate270"
    FLIP_HORIZONTAL = "flip_horizontal"
    FLIP_VERTICAL = "flip_vertical"


@dataclass(frozen=True)
class FilterParams:
    kind: FilterKind
    intensity: float = 1.0  # blend factor between input (0.0) and full effect (1.0)
    radius: float | None = None  # blur only


@dataclass(frozen=True)
class AdjustmentParams:
    brightness: float | None = None
    contrast: float | None = None
    saturation: float | None = None
    hue: int | None = None  # degrees
    gamma: float | None = None

    def present_fields(self) -> dict[str, float | int]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class TransformParams:
    kind: TransformKind


@dataclass(frozen=True)
class CropRect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


@dataclass(frozen=True)
class CropParams:
    rect: CropRect
    aspect_ratio: float | None = None  # width / height lock


OperationParams = Union[FilterParams, AdjustmentParams, TransformParams, CropParams]

_KIND_BY_PARAMS: dict[type, OperationKind] = {
    FilterParams: OperationKind.FILTER,
    AdjustmentParams: OperationKind.ADJUSTMENT,
    TransformParams: OperationKind.TRANSFORM,
    CropParams: OperationKind.CROP,
}


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class EditOperation:
    id: str
    params: OperationParams
    timestamp: int = field(default_factory=_now_ms)  # epoch milliseconds

    def __post_init__(self) -> None:
        if type(self.params) not in _KIND_BY_PARAMS:
            raise TypeError(f"Unknown operation params type: {type(self.params).__name__}")

    @property
    def kind(self) -> OperationKind:
        return _KIND_BY_PARAMS[type(self.params)]

    def fingerprint(self) -> str:
        """Canonical text form of identity and payload, used for cache keys.

        The timestamp is excluded: two operations with the same id and payload
        render identically.
        """
        payload = asdict(self.params)
        return json.dumps(
            {"id": self.id, "kind": self.kind.value, "params": payload},
            sort_keys=True,
            default=lambda v: v.value if isinstance(v, Enum) else str(v),
        )
