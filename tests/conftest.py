import asyncio
import io
import sys
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root is on sys.path so 'magic_editor' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from magic_editor.application.orchestrator import EditOrchestrator  # noqa: E402
from magic_editor.config import Settings  # noqa: E402
from magic_editor.domain.entities.image import ImageAsset  # noqa: E402
from magic_editor.domain.entities.provider_result import ImageResult, TextResult  # noqa: E402
from magic_editor.domain.services.geometry_service import GeometryService  # noqa: E402
from magic_editor.infrastructure.credentials import CredentialStore  # noqa: E402
from magic_editor.infrastructure.raster.pillow_backend import PillowRasterBackend  # noqa: E402


def encode_image(w=4, h=4, color=(128, 64, 32), fmt="PNG") -> bytes:
    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[:, :] = color
    img = Image.fromarray(arr)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def decoded_size(asset: ImageAsset) -> tuple[int, int]:
    return Image.open(io.BytesIO(asset.raw_bytes)).size


class FakeVision:
    def __init__(self, result=None):
        self.result = result or TextResult("A quiet lake at golden hour", "fake")
        self.calls = []

    async def describe(self, asset):
        self.calls.append(asset)
        return self.result


class FakeTranslator:
    def __init__(self, result=None):
        self.result = result
        self.calls = []

    async def translate(self, text):
        self.calls.append(text)
        return self.result or TextResult(text, "fake")


class FakeEditor:
    """Returns a fresh image; ``gate`` lets a test hold the call open."""

    def __init__(self, size=(32, 24), fmt="PNG", result=None):
        self.size = size
        self.fmt = fmt
        self.result = result
        self.gate = None
        self.calls = []

    async def edit(self, asset, instruction):
        self.calls.append((asset, instruction))
        if self.gate is not None:
            await self.gate.wait()
        if self.result is not None:
            return self.result
        mime = "image/jpeg" if self.fmt == "JPEG" else "image/png"
        raw = encode_image(*self.size, color=(10, 200, 30), fmt=self.fmt)
        return ImageResult(ImageAsset.from_bytes(raw, mime, prefix="edit"), "fake")


class FakeOutpainter:
    def __init__(self, size=None, result=None):
        self.size = size
        self.result = result
        self.calls = []

    async def outpaint(self, asset, target_width, target_height, instruction):
        self.calls.append((asset, target_width, target_height, instruction))
        if self.result is not None:
            return self.result
        width, height = self.size or (target_width, target_height)
        raw = encode_image(width, height, color=(90, 90, 200))
        return ImageResult(ImageAsset.from_bytes(raw, "image/png", prefix="outpaint"), "fake")


class Providers:
    def __init__(self):
        self.vision = FakeVision()
        self.translator = FakeTranslator()
        self.editor = FakeEditor()
        self.outpainter = FakeOutpainter()


@pytest.fixture()
def make_image():
    return encode_image


@pytest.fixture()
def image_size():
    return decoded_size


@pytest.fixture()
def geometry() -> GeometryService:
    return GeometryService(PillowRasterBackend())


@pytest.fixture()
def providers() -> Providers:
    return Providers()


@pytest.fixture()
def orchestrator(geometry, providers) -> EditOrchestrator:
    return EditOrchestrator(
        geometry,
        vision=providers.vision,
        translator=providers.translator,
        editor=providers.editor,
        outpainter=providers.outpainter,
    )


@pytest.fixture()
def run():
    return asyncio.run


@pytest.fixture()
def client(orchestrator) -> TestClient:
    # lazy import so the app module is only built for API tests
    from magic_editor.infrastructure.api.dependencies import EditorServices
    from magic_editor.main import create_app

    settings = Settings()
    services = EditorServices(settings, CredentialStore(), orchestrator)
    return TestClient(create_app(services, settings))
