# inference.py
import logging
from typing import Any, Dict, Optional, Protocol, Sequence, Union

import google.generativeai as genai

from backend.app.config import GEMINI_API_KEY, GEMINI_MODEL, GEMINI_TEMPERATURE
from backend.app.errors import InferenceTransportError
from backend.app.schemas import ImageBlob

logger = logging.getLogger("skinvision.inference")

InstructionPart = Union[str, ImageBlob]


class InferenceService(Protocol):
    """
    Anything that takes a multimodal instruction (text + embedded images)
    plus a target JSON schema and returns the raw JSON reply text.
    """

    def generate(self, parts: Sequence[InstructionPart], response_schema: Dict[str, Any]) -> str:
        ...


class GeminiInferenceService:
    """InferenceService backed by the Gemini API (google-generativeai)."""

    def __init__(
        self,
        model_name: str = GEMINI_MODEL,
        api_key: Optional[str] = GEMINI_API_KEY,
        temperature: float = GEMINI_TEMPERATURE,
    ):
        if api_key:
            genai.configure(api_key=api_key)
        self.model_name = model_name
        self.temperature = temperature

    @staticmethod
    def _to_content(part: InstructionPart):
        if isinstance(part, ImageBlob):
            return {"mime_type": part.media_type, "data": part.decode()}
        return part

    def generate(self, parts: Sequence[InstructionPart], response_schema: Dict[str, Any]) -> str:
        model = genai.GenerativeModel(
            model_name=self.model_name,
            generation_config={
                "temperature": self.temperature,
                # Ask for JSON so the reply can be validated instead of scraped
                "response_mime_type": "application/json",
                "response_schema": response_schema,
            },
        )
        try:
            resp = model.generate_content([self._to_content(p) for p in parts])
            text = resp.text
        except Exception as e:
            logger.warning(f"[inference] Gemini call failed (model={self.model_name}): {e}")
            raise InferenceTransportError(f"Inference service call failed: {e}") from e

        if not text or not text.strip():
            raise InferenceTransportError("Inference service returned an empty reply.")
        return text.strip()


_inference_service: Optional[InferenceService] = None


def get_inference_service() -> InferenceService:
    global _inference_service
    if _inference_service is None:
        _inference_service = GeminiInferenceService()
        logger.info(f"[inference] Gemini client ready (model={GEMINI_MODEL})")
    return _inference_service
