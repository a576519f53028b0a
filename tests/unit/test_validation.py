"""
Tests for operation payload validation.
"""
from __future__ import annotations

import pytest

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
from darkroom.domain.services.validation import crop_rect_for_aspect_ratio, validate_operation


def _adjust(**fields) -> EditOperation:
    return EditOperation(id="adj", params=AdjustmentParams(**fields))


def _crop(x, y, w, h, ratio=None) -> EditOperation:
    return EditOperation(id="crop", params=CropParams(rect=CropRect(x, y, w, h), aspect_ratio=ratio))


class TestAdjustment:
    def test_brightness_in_range(self):
        validate_operation(_adjust(brightness=1.5))

    def test_brightness_out_of_range(self):
        with pytest.raises(InvalidOperation) as info:
            validate_operation(_adjust(brightness=2.5))
        assert info.value.field == "brightness"
        assert info.value.to_dict()["type"] == "invalid_operation"

    def test_requires_a_field(self):
        with pytest.raises(InvalidOperation):
            validate_operation(_adjust())

    @pytest.mark.parametrize(
        "fields",
        [{"gamma": 0.05}, {"hue": 181}, {"hue": 10.5}, {"saturation": -0.1}, {"contrast": True}],
    )
    def test_rejects(self, fields):
        with pytest.raises(InvalidOperation):
            validate_operation(_adjust(**fields))

    def test_rejects_nan(self):
        with pytest.raises(InvalidOperation):
            validate_operation(_adjust(brightness=float("nan")))


class TestFilter:
    def test_blur_needs_radius(self):
        op = EditOperation(id="f", params=FilterParams(kind=FilterKind.BLUR))
        with pytest.raises(InvalidOperation) as info:
            validate_operation(op)
        assert info.value.field == "radius"

    @pytest.mark.parametrize("radius", [0.0, -1.0, 100.5])
    def test_blur_radius_bounds(self, radius):
        op = EditOperation(id="f", params=FilterParams(kind=FilterKind.BLUR, radius=radius))
        with pytest.raises(InvalidOperation):
            validate_operation(op)

    def test_radius_only_for_blur(self):
        op = EditOperation(id="f", params=FilterParams(kind=FilterKind.SEPIA, radius=2.0))
        with pytest.raises(InvalidOperation):
            validate_operation(op)

    def test_intensity_bounds(self):
        op = EditOperation(id="f", params=FilterParams(kind=FilterKind.INVERT, intensity=1.2))
        with pytest.raises(InvalidOperation) as info:
            validate_operation(op)
        assert info.value.field == "intensity"

    def test_valid_blur(self):
        validate_operation(EditOperation(id="f", params=FilterParams(kind=FilterKind.BLUR, radius=100.0)))


class TestCrop:
    def test_rect_outside_small_image(self):
        with pytest.raises(InvalidOperation):
            validate_operation(_crop(100, 100, 800, 600), image_size=(640, 480))

    def test_rect_inside_large_image(self):
        validate_operation(_crop(100, 100, 800, 600), image_size=(1920, 1080))

    def test_bounds_unchecked_without_size(self):
        validate_operation(_crop(100, 100, 800, 600))

    @pytest.mark.parametrize("rect", [(-1, 0, 10, 10), (0, 0, 0, 10), (0, 0, 10, 0)])
    def test_degenerate(self, rect):
        with pytest.raises(InvalidOperation):
            validate_operation(_crop(*rect))

    def test_aspect_ratio_lock(self):
        validate_operation(_crop(0, 0, 400, 300, ratio=4 / 3))
        with pytest.raises(InvalidOperation) as info:
            validate_operation(_crop(0, 0, 400, 400, ratio=4 / 3))
        assert info.value.field == "aspect_ratio"


def test_transform_is_valid():
    validate_operation(EditOperation(id="t", params=TransformParams(kind=TransformKind.FLIP_VERTICAL)))


def test_empty_id_rejected():
    with pytest.raises(InvalidOperation) as info:
        validate_operation(EditOperation(id="  ", params=TransformParams(kind=TransformKind.ROTATE_90)))
    assert info.value.field == "id"


def test_unknown_params_type_rejected_at_construction():
    with pytest.raises(TypeError):
        EditOperation(id="x", params={"brightness": 1.0})


def test_crop_rect_for_aspect_ratio_centered():
    rect = crop_rect_for_aspect_ratio(1920, 1080, 1.0)
    assert (rect.width, rect.height) == (1080, 1080)
    assert (rect.x, rect.y) == (420, 0)


def test_crop_rect_for_aspect_ratio_top_left():
    rect = crop_rect_for_aspect_ratio(1000, 1000, 2.0, from_center=False)
    assert (rect.x, rect.y, rect.width, rect.height) == (0, 0, 1000, 500)
