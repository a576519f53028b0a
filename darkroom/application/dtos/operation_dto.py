"""Wire form of edit operations.

Operations travel as ``{"id", "operation_type", "params"}`` objects where
``operation_type`` selects the shape of ``params``. Only the structure is
checked here; value ranges are checked by the domain validator so callers
get an ``invalid_operation`` error naming the field.
"""
from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

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


class FilterParamsDTO(BaseModel):
    """Parameters of a filter operation."""
    type: FilterKind = Field(..., description="Filter to apply", example="blur")
    intensity: float = Field(1.0, description="Blend between input (0.0) and full effect (1.0)", example=1.0)
    radius: Optional[float] = Field(None, description="Gaussian sigma in pixels, blur only (0, 100]", example=2.0)


class AdjustmentParamsDTO(BaseModel):
    """Tonal adjustments; at least one field must be set."""
    brightness: Optional[float] = Field(None, description="Multiplier, 0.0 to 2.0 (1.0 = unchanged)", example=1.2)
    contrast: Optional[float] = Field(None, description="Factor around mid gray, 0.0 to 2.0", example=1.1)
    saturation: Optional[float] = Field(None, description="Saturation factor, 0.0 to 2.0", example=0.8)
    hue: Optional[int] = Field(None, description="Hue rotation in degrees, -180 to 180", example=15)
    gamma: Optional[float] = Field(None, description="Gamma, 0.1 to 3.0 (>1 brightens)", example=1.0)


class TransformParamsDTO(BaseModel):
    """Lossless geometric transform. Rotations are clockwise."""
    type: TransformKind = Field(..., description="Transform to apply", example="rotate90")


class CropRectDTO(BaseModel):
    """Crop rectangle in pixels of the image it is applied to."""
    x: int = Field(..., description="Left edge", example=0)
    y: int = Field(..., description="Top edge", example=0)
    width: int = Field(..., description="Width in pixels", example=800)
    height: int = Field(..., description="Height in pixels", example=600)

    def to_entity(self) -> CropRect:
        return CropRect(x=self.x, y=self.y, width=self.width, height=self.height)

    @classmethod
    def from_entity(cls, rect: CropRect) -> CropRectDTO:
        return cls(x=rect.x, y=rect.y, width=rect.width, height=rect.height)


class CropParamsDTO(BaseModel):
    """Crop parameters with an optional locked width/height ratio."""
    rect: CropRectDTO = Field(..., description="Region to keep")
    aspect_ratio: Optional[float] = Field(None, description="Locked width / height ratio", example=1.3333)


class _OperationBase(BaseModel):
    id: str = Field(..., description="Client-chosen id, unique within the session", example="op-1")
    timestamp: Optional[int] = Field(None, description="Creation time in epoch milliseconds")

    def _entity(self, params) -> EditOperation:
        if self.timestamp is None:
            return EditOperation(id=self.id, params=params)
        return EditOperation(id=self.id, params=params, timestamp=self.timestamp)


class FilterOperationDTO(_OperationBase):
    operation_type: Literal["Filter"] = "Filter"
    params: FilterParamsDTO

    def to_entity(self) -> EditOperation:
        p = self.params
        return self._entity(FilterParams(kind=p.type, intensity=p.intensity, radius=p.radius))


class AdjustmentOperationDTO(_OperationBase):
    operation_type: Literal["Adjustment"] = "Adjustment"
    params: AdjustmentParamsDTO

    def to_entity(self) -> EditOperation:
        return self._entity(AdjustmentParams(**self.params.model_dump()))


class TransformOperationDTO(_OperationBase):
    operation_type: Literal["Transform"] = "Transform"
    params: TransformParamsDTO

    def to_entity(self) -> EditOperation:
        return self._entity(TransformParams(kind=self.params.type))


class CropOperationDTO(_OperationBase):
    operation_type: Literal["Crop"] = "Crop"
    params: CropParamsDTO

    def to_entity(self) -> EditOperation:
        p = self.params
        return self._entity(CropParams(rect=p.rect.to_entity(), aspect_ratio=p.aspect_ratio))


OperationDTO = Annotated[
    Union[FilterOperationDTO, AdjustmentOperationDTO, TransformOperationDTO, CropOperationDTO],
    Field(discriminator="operation_type"),
]


def operation_from_entity(op: EditOperation) -> OperationDTO:
    params = op.params
    if isinstance(params, FilterParams):
        return FilterOperationDTO(
            id=op.id,
            timestamp=op.timestamp,
            params=FilterParamsDTO(type=params.kind, intensity=params.intensity, radius=params.radius),
        )
    if isinstance(params, AdjustmentParams):
        return AdjustmentOperationDTO(
            id=op.id, timestamp=op.timestamp, params=AdjustmentParamsDTO(**params.present_fields())
        )
    if isinstance(params, TransformParams):
        return TransformOperationDTO(
            id=op.id, timestamp=op.timestamp, params=TransformParamsDTO(type=params.kind)
        )
    return CropOperationDTO(
        id=op.id,
        timestamp=op.timestamp,
        params=CropParamsDTO(
            rect=CropRectDTO.from_entity(params.rect), aspect_ratio=params.aspect_ratio
        ),
    )
