import io
import sys
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root is on sys.path so 'darkroom' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture()
def small_image() -> np.ndarray:
    rng = np.random.default_rng(1234)
    return rng.random((12, 16, 3), dtype=np.float32)


@pytest.fixture()
def make_png():
    """Factory: encoded PNG bytes of a random (or flat) RGB image."""

    def _make(width=16, height=12, color=None, seed=7) -> bytes:
        if color is None:
            rng = np.random.default_rng(seed)
            arr = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
        else:
            arr = np.zeros((height, width, 3), dtype=np.uint8)
            arr[:, :] = color
        buf = io.BytesIO()
        Image.fromarray(arr).save(buf, format="PNG")
        return buf.getvalue()

    return _make


@pytest.fixture()
def png_file(tmp_path, make_png) -> Path:
    path = tmp_path / "source.png"
    path.write_bytes(make_png())
    return path


@pytest.fixture()
def pipeline():
    from darkroom.domain.services.render_pipeline import RenderPipeline

    p = RenderPipeline(workers=2)
    yield p
    p.close()


@pytest.fixture()
def image_state(pipeline):
    from darkroom.application.use_cases.image_state import ImageState

    return ImageState(pipeline, preview_max_width=64, preview_max_height=64)


@pytest.fixture()
def client():
    # lazy import so logging/settings are configured per test
    from darkroom.infrastructure.config import Settings
    from darkroom.main import create_app

    app = create_app(Settings())
    with TestClient(app) as c:
        yield c
