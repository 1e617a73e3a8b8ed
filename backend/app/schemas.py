# app/schemas.py
import base64
import binascii
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backend.app.errors import ImageDecodeError


class ModelType(str, Enum):
    CNN = "CNN"
    VGG16 = "VGG16"
    RESNET50 = "ResNet50"


DEFAULT_MODEL_TYPE = ModelType.RESNET50


class ImageBlob(BaseModel):
    """
    An embedded image: declared media type + base64 payload.
    Travels as `data:<media_type>;base64,<payload>`.
    """
    model_config = ConfigDict(frozen=True)

    media_type: str
    payload: str

    @classmethod
    def from_data_uri(cls, data_uri: str) -> "ImageBlob":
        if not data_uri.startswith("data:") or ";base64," not in data_uri:
            raise ImageDecodeError("Expected a data URI of the form 'data:<mimetype>;base64,<data>'.")

        # Media type sits between `data:` and the first `;`
        media_type = data_uri[5:data_uri.index(";")]
        payload = data_uri.split(";base64,", 1)[1]
        if not media_type:
            raise ImageDecodeError("Data URI is missing its media type.")
        try:
            base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageDecodeError(f"Data URI payload is not valid base64: {e}") from e
        return cls(media_type=media_type, payload=payload)

    @classmethod
    def from_bytes(cls, media_type: str, raw: bytes) -> "ImageBlob":
        return cls(media_type=media_type, payload=base64.b64encode(raw).decode("ascii"))

    def decode(self) -> bytes:
        return base64.b64decode(self.payload)

    def to_data_uri(self) -> str:
        return f"data:{self.media_type};base64,{self.payload}"


class PredictionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    predictedDisease: str = Field(description="The predicted skin disease.")
    confidence: float = Field(ge=0.0, le=1.0, description="The confidence level of the prediction (0-1).")
    details: str = Field(description="One sentence explaining the prediction.")


class RequestOutcome(BaseModel):
    """Result of one form submission; exactly one of prediction / error is set."""
    model_config = ConfigDict(frozen=True)

    prediction: Optional[PredictionResult] = None
    error: Optional[str] = None
    timestamp: int  # epoch milliseconds

    @model_validator(mode="after")
    def _exactly_one(self):
        if (self.prediction is None) == (self.error is None):
            raise ValueError("RequestOutcome needs exactly one of prediction or error")
        return self


class PredictionForm(BaseModel):
    photoDataUri: str = Field(min_length=1)
    modelType: ModelType


class ModelInfo(BaseModel):
    name: ModelType
    description: str


class ModelsResponse(BaseModel):
    models: List[ModelInfo]
    default: ModelType
    disclaimer: str
