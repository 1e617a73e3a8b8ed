"""Shared test fixtures for SkinVision AI."""

import base64
import io
import json

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from backend.app.inference import get_inference_service
from backend.app.main import app


def make_data_uri(width, height, mode="RGB", fmt="PNG", media_type="image/png"):
    """Random-noise image of the given size encoded as a data URI."""
    channels = {"RGB": 3, "RGBA": 4}.get(mode)
    shape = (height, width, channels) if channels else (height, width)
    img = Image.fromarray(np.random.randint(0, 255, shape, dtype=np.uint8))
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return f"data:{media_type};base64,{base64.b64encode(buf.getvalue()).decode('ascii')}"


def decode_data_uri(data_uri):
    payload = data_uri.split(";base64,", 1)[1]
    return Image.open(io.BytesIO(base64.b64decode(payload)))


class FakeInferenceService:
    """Deterministic stand-in for the Gemini service."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def generate(self, parts, response_schema):
        self.calls.append((list(parts), response_schema))
        if self.error is not None:
            raise self.error
        if isinstance(self.reply, dict):
            return json.dumps(self.reply)
        return self.reply


@pytest.fixture
def skin_reply():
    return {
        "predictedDisease": "Eczema",
        "confidence": 0.82,
        "details": "Dry, inflamed patches with a scaly texture are typical of eczema.",
    }


@pytest.fixture
def fake_service(skin_reply):
    return FakeInferenceService(reply=skin_reply)


@pytest.fixture
def large_png_uri():
    return make_data_uri(640, 480)


@pytest.fixture
def small_png_uri():
    return make_data_uri(100, 150)


@pytest.fixture
def jpeg_uri():
    return make_data_uri(512, 512, fmt="JPEG", media_type="image/jpeg")


@pytest.fixture
def client_for():
    """TestClient factory wired to a given inference service."""
    def _make(service):
        app.dependency_overrides[get_inference_service] = lambda: service
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def client(client_for, fake_service):
    return client_for(fake_service)
