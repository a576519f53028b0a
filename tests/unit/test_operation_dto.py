from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from darkroom.application.dtos.operation_dto import OperationDTO, operation_from_entity
from darkroom.domain.entities.operation import (
    AdjustmentParams,
    CropParams,
    FilterKind,
    FilterParams,
    OperationKind,
    TransformKind,
    TransformParams,
)

adapter = TypeAdapter(OperationDTO)


def test_filter_wire_form():
    dto = adapter.validate_python(
        {"id": "op-1", "operation_type": "Filter", "params": {"type": "blur", "radius": 2.0}}
    )
    op = dto.to_entity()
    assert op.kind is OperationKind.FILTER
    assert op.params == FilterParams(kind=FilterKind.BLUR, intensity=1.0, radius=2.0)


def test_adjustment_keeps_only_given_fields():
    dto = adapter.validate_python(
        {"id": "op-2", "operation_type": "Adjustment", "params": {"brightness": 1.5}, "timestamp": 42}
    )
    op = dto.to_entity()
    assert op.params == AdjustmentParams(brightness=1.5)
    assert op.timestamp == 42


def test_transform_and_crop():
    rot = adapter.validate_python(
        {"id": "op-3", "operation_type": "Transform", "params": {"type": "rotate90"}}
    ).to_entity()
    assert rot.params == TransformParams(kind=TransformKind.ROTATE_90)

    crop = adapter.validate_python(
        {
            "id": "op-4",
            "operation_type": "Crop",
            "params": {"rect": {"x": 1, "y": 2, "width": 30, "height": 20}, "aspect_ratio": 1.5},
        }
    ).to_entity()
    assert isinstance(crop.params, CropParams)
    assert crop.params.rect.right == 31
    assert crop.params.aspect_ratio == 1.5


def test_unknown_discriminant_rejected():
    with pytest.raises(ValidationError):
        adapter.validate_python({"id": "x", "operation_type": "Layer", "params": {}})


def test_unknown_filter_rejected():
    with pytest.raises(ValidationError):
        adapter.validate_python({"id": "x", "operation_type": "Filter", "params": {"type": "emboss"}})


def test_from_entity_serializes_wire_form():
    op = adapter.validate_python(
        {"id": "op-5", "operation_type": "Filter", "params": {"type": "sepia", "intensity": 0.4}}
    ).to_entity()
    data = operation_from_entity(op).model_dump(mode="json")
    assert data["operation_type"] == "Filter"
    assert data["params"] == {"type": "sepia", "intensity": 0.4, "radius": None}
    assert data["timestamp"] == op.timestamp
