import io

import numpy as np
from PIL import Image


def brightness_op(op_id: str, value: float) -> dict:
    return {"id": op_id, "operation_type": "Adjustment", "params": {"brightness": value}}


def open_png(client, path) -> dict:
    r = client.post("/images/open", json={"file_path": str(path)})
    assert r.status_code == 200, r.text
    return r.json()


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "darkroom"
    assert client.get("/health").json() == {"status": "healthy"}


def test_open_image(client, png_file):
    data = open_png(client, png_file)
    assert data["metadata"]["width"] == 16
    assert data["metadata"]["height"] == 12
    assert data["metadata"]["path"] == str(png_file)
    assert data["preview"]["preview_base64"].startswith("data:image/png;base64,")


def test_open_missing_file(client, tmp_path):
    r = client.post("/images/open", json={"file_path": str(tmp_path / "missing.png")})
    assert r.status_code == 400
    assert r.json()["detail"]["type"] == "image_load_error"


def test_upload_image(client, make_png):
    files = {"file": ("sample.png", make_png(20, 10), "image/png")}
    r = client.post("/images/upload", files=files)
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["metadata"]["path"] is None
    assert data["preview"]["width"] == 20


def test_upload_unsupported(client):
    files = {"file": ("notes.txt", b"plain text", "text/plain")}
    r = client.post("/images/upload", files=files)
    assert r.status_code == 415
    assert r.json()["detail"]["type"] == "unsupported_format"


def test_apply_without_image(client):
    r = client.post("/editor/operations", json={"operation": brightness_op("b", 1.2)})
    assert r.status_code == 409
    assert r.json()["detail"] == {"type": "state_error", "message": "No image loaded"}


def test_apply_undo_redo(client, png_file):
    original = open_png(client, png_file)["preview"]

    r = client.post("/editor/operations", json={"operation": brightness_op("b1", 1.5)})
    assert r.status_code == 200, r.text
    applied = r.json()

    history = client.get("/history").json()
    assert history["can_undo"] is True
    assert history["history_count"] == 1
    assert history["applied"][0]["id"] == "b1"

    r = client.post("/editor/undo")
    assert r.status_code == 200
    assert r.json() == original

    r = client.post("/editor/redo")
    assert r.json() == applied

    r = client.post("/editor/redo")
    assert r.status_code == 409
    assert r.json()["detail"]["type"] == "state_error"


def test_invalid_operation_is_structured(client, png_file):
    open_png(client, png_file)
    r = client.post("/editor/operations", json={"operation": brightness_op("b", 2.5)})
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["type"] == "invalid_operation"
    assert detail["field"] == "brightness"
    assert client.get("/history").json()["history_count"] == 0


def test_unknown_operation_type(client, png_file):
    open_png(client, png_file)
    body = {"operation": {"id": "x", "operation_type": "Layer", "params": {}}}
    r = client.post("/editor/operations", json=body)
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["type"] == "invalid_operation"
    assert detail["field"] == "operation"


def test_unknown_filter_is_structured(client, png_file):
    open_png(client, png_file)
    op = {"id": "f", "operation_type": "Filter", "params": {"type": "emboss"}}
    r = client.post("/editor/operations", json={"operation": op})
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["type"] == "invalid_operation"
    assert detail["field"] == "type"


def test_fractional_hue_is_structured(client, png_file):
    open_png(client, png_file)
    op = {"id": "h", "operation_type": "Adjustment", "params": {"hue": 15.5}}
    r = client.post("/editor/operations", json={"operation": op})
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["type"] == "invalid_operation"
    assert detail["field"] == "hue"
    assert client.get("/history").json()["history_count"] == 0


def test_malformed_export_body_is_structured(client):
    r = client.post("/export", json={"format": "png"})
    assert r.status_code == 422
    assert r.json()["detail"]["type"] == "invalid_operation"
    assert r.json()["detail"]["field"] == "output_path"


def test_crop_and_preview_bounds(client, png_file):
    open_png(client, png_file)
    op = {
        "id": "c",
        "operation_type": "Crop",
        "params": {"rect": {"x": 2, "y": 2, "width": 10, "height": 8}},
    }
    r = client.post(
        "/editor/operations",
        json={"operation": op, "preview_max_width": 5, "preview_max_height": 5},
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert (data["width"], data["height"]) == (10, 8)
    assert (data["preview_width"], data["preview_height"]) == (5, 4)


def test_preview_does_not_commit(client, png_file):
    open_png(client, png_file)
    body = {
        "operations": [{"id": "g", "operation_type": "Filter", "params": {"type": "grayscale"}}],
        "max_width": 8,
        "max_height": 8,
    }
    r = client.post("/editor/preview", json=body)
    assert r.status_code == 200, r.text
    assert r.json()["preview_width"] == 8
    assert client.get("/history").json()["history_count"] == 0


def test_reset(client, png_file):
    original = open_png(client, png_file)["preview"]
    client.post("/editor/operations", json={"operation": brightness_op("b", 0.5)})
    r = client.post("/editor/reset")
    assert r.json() == original
    assert client.get("/history").json()["can_undo"] is False


def test_crop_suggestion(client, png_file):
    open_png(client, png_file)
    r = client.post("/editor/crop-suggestion", json={"aspect_ratio": 1.0})
    assert r.json() == {"x": 2, "y": 0, "width": 12, "height": 12}


def test_export_session(client, png_file, tmp_path):
    open_png(client, png_file)
    client.post(
        "/editor/operations",
        json={"operation": {"id": "r", "operation_type": "Transform", "params": {"type": "rotate90"}}},
    )
    out = tmp_path / "export.jpg"
    r = client.post("/export", json={"output_path": str(out), "format": "jpg", "quality": 85})
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["format"] == "jpeg"
    assert data["byte_size"] == out.stat().st_size
    with Image.open(out) as img:
        assert img.size == (12, 16)


def test_export_explicit_operations(client, png_file, tmp_path):
    open_png(client, png_file)
    out = tmp_path / "inverted.png"
    body = {
        "output_path": str(out),
        "format": "png",
        "operations": [{"id": "i", "operation_type": "Filter", "params": {"type": "invert"}}],
    }
    assert client.post("/export", json=body).status_code == 200
    written = np.asarray(Image.open(out).convert("RGB")).astype(int)
    source = np.asarray(Image.open(png_file).convert("RGB")).astype(int)
    assert np.array_equal(written, 255 - source)


def test_export_after_upload_needs_path(client, make_png, tmp_path):
    client.post("/images/upload", files={"file": ("a.png", make_png(), "image/png")})
    r = client.post("/export", json={"output_path": str(tmp_path / "x.png"), "format": "png"})
    assert r.status_code == 409


def test_export_unknown_format(client, png_file, tmp_path):
    open_png(client, png_file)
    r = client.post("/export", json={"output_path": str(tmp_path / "x.tga"), "format": "tga"})
    assert r.status_code == 415
    assert r.json()["detail"]["format"] == "tga"


def test_export_bad_quality(client, png_file, tmp_path):
    open_png(client, png_file)
    body = {"output_path": str(tmp_path / "x.jpg"), "format": "jpeg", "quality": 150}
    r = client.post("/export", json=body)
    assert r.status_code == 422
    assert r.json()["detail"]["field"] == "quality"


def test_upload_bytes_match_decode(client):
    arr = np.zeros((4, 6, 3), dtype=np.uint8)
    arr[:, :3] = 255
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    r = client.post("/images/upload", files={"file": ("half.png", buf.getvalue(), "image/png")})
    assert r.json()["metadata"]["byte_size"] == len(buf.getvalue())
