"""Tests for backend.app.inference module."""

import logging

import pytest

from backend.app import inference
from backend.app.errors import InferenceTransportError
from backend.app.inference import GeminiInferenceService
from backend.app.prediction import PREDICTION_RESPONSE_SCHEMA
from backend.app.schemas import ImageBlob


class _Reply:
    def __init__(self, text):
        self._text = text

    @property
    def text(self):
        if isinstance(self._text, Exception):
            raise self._text
        return self._text


class FakeGenerativeModel:
    """Records constructor kwargs and contents instead of calling Gemini."""

    instances = []

    def __init__(self, model_name, generation_config):
        self.model_name = model_name
        self.generation_config = generation_config
        self.contents = None
        self.reply = FakeGenerativeModel.next_reply
        FakeGenerativeModel.instances.append(self)

    def generate_content(self, contents):
        self.contents = contents
        if isinstance(self.reply, Exception) and not isinstance(self.reply, ValueError):
            raise self.reply
        return _Reply(self.reply)


@pytest.fixture
def gemini(monkeypatch):
    FakeGenerativeModel.instances = []
    FakeGenerativeModel.next_reply = '{"predictedDisease": "Acne", "confidence": 0.6, "details": "x"}'
    monkeypatch.setattr(inference.genai, "GenerativeModel", FakeGenerativeModel)
    return FakeGenerativeModel


@pytest.fixture
def service():
    return GeminiInferenceService(model_name="gemini-test", api_key=None, temperature=0.1)


@pytest.fixture
def blob():
    return ImageBlob.from_bytes("image/png", b"fake-bytes")


class TestRequest:
    def test_image_becomes_inline_part(self, gemini, service, blob):
        service.generate(["describe", blob], PREDICTION_RESPONSE_SCHEMA)
        contents = gemini.instances[0].contents
        assert contents[0] == "describe"
        assert contents[1] == {"mime_type": "image/png", "data": b"fake-bytes"}

    def test_json_mode_and_schema_passed(self, gemini, service, blob):
        service.generate(["describe", blob], PREDICTION_RESPONSE_SCHEMA)
        model = gemini.instances[0]
        assert model.model_name == "gemini-test"
        assert model.generation_config["response_mime_type"] == "application/json"
        assert model.generation_config["response_schema"] == PREDICTION_RESPONSE_SCHEMA
        assert model.generation_config["temperature"] == 0.1

    def test_returns_stripped_text(self, gemini, service, blob):
        gemini.next_reply = '  {"a": 1}\n'
        assert service.generate(["describe", blob], PREDICTION_RESPONSE_SCHEMA) == '{"a": 1}'


class TestFailures:
    def test_client_exception(self, gemini, service, blob):
        gemini.next_reply = ConnectionError("network unreachable")
        with pytest.raises(InferenceTransportError, match="network unreachable"):
            service.generate(["describe", blob], PREDICTION_RESPONSE_SCHEMA)

    def test_blocked_reply(self, gemini, service, blob):
        # google-generativeai raises ValueError from .text when no candidate came back
        gemini.next_reply = ValueError("response was blocked")
        with pytest.raises(InferenceTransportError):
            service.generate(["describe", blob], PREDICTION_RESPONSE_SCHEMA)

    @pytest.mark.parametrize("reply", ["", "   \n"])
    def test_empty_reply(self, gemini, service, blob, reply):
        gemini.next_reply = reply
        with pytest.raises(InferenceTransportError, match="empty reply"):
            service.generate(["describe", blob], PREDICTION_RESPONSE_SCHEMA)

    def test_failure_logged_without_traceback(self, gemini, service, blob, caplog):
        gemini.next_reply = ConnectionError("network unreachable")
        with caplog.at_level(logging.WARNING, logger="skinvision.inference"):
            with pytest.raises(InferenceTransportError):
                service.generate(["describe", blob], PREDICTION_RESPONSE_SCHEMA)
        records = [r for r in caplog.records if r.name == "skinvision.inference"]
        assert len(records) == 1
        assert records[0].levelno == logging.WARNING
        assert records[0].exc_info is None
