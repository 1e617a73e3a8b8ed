# prediction.py
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError

from backend.app.errors import SchemaValidationError
from backend.app.inference import InferenceService, InstructionPart, get_inference_service
from backend.app.schemas import ImageBlob, ModelType, PredictionResult

logger = logging.getLogger("skinvision.prediction")

INAPPROPRIATE_IMAGE_LABEL = "Inappropriate image"
INAPPROPRIATE_IMAGE_DETAILS = (
    "The uploaded image does not appear to show a human skin condition, "
    "so no skin disease prediction can be made."
)

# Persona handed to the generative model for each simulated architecture.
# Only tone / confidence calibration differ; there is one code path for all three.
MODEL_PERSONAS: Dict[ModelType, Dict[str, str]] = {
    ModelType.CNN: {
        "description": "A general-purpose convolutional network with balanced attention to colour, shape and texture.",
        "persona": (
            "You reason like a standard convolutional neural network: weigh colour, shape and "
            "texture features evenly and report a moderate, well-calibrated confidence."
        ),
    },
    ModelType.VGG16: {
        "description": "A deep stack of small convolutions that focuses on fine surface texture.",
        "persona": (
            "You reason like VGG16: focus mainly on fine-grained surface texture and local patterns, "
            "and report a slightly lower, more cautious confidence than a general CNN would."
        ),
    },
    ModelType.RESNET50: {
        "description": "A residual network that captures deep, complex features. Recommended for general use.",
        "persona": (
            "You reason like ResNet50: draw on deep, complex hierarchical features of the lesion and "
            "its surroundings, and be decisive, reporting a higher confidence when the evidence supports it."
        ),
    },
}

# Target shape for the structured reply (Gemini schema dialect)
PREDICTION_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "predictedDisease": {"type": "STRING", "description": "The predicted skin disease."},
        "confidence": {"type": "NUMBER", "description": "The confidence level of the prediction (0-1)."},
        "details": {"type": "STRING", "description": "One sentence explaining the prediction."},
    },
    "required": ["predictedDisease", "confidence", "details"],
}


def build_instruction(blob: ImageBlob, model_type: ModelType) -> List[InstructionPart]:
    """Text + image parts asking the service to role-play the selected model."""
    persona = MODEL_PERSONAS[model_type]["persona"]
    text = f"""You are an AI that analyzes images of skin conditions and predicts the most likely disease.
Use the {model_type.value} model to make the prediction. {persona}

Step 1: decide whether the image plausibly shows a human skin condition.
If it does not (for example a car, an animal, a landscape or a document), reply with exactly:
{{"predictedDisease": "{INAPPROPRIATE_IMAGE_LABEL}", "confidence": 1.0, "details": "{INAPPROPRIATE_IMAGE_DETAILS}"}}

Step 2: otherwise, analyze the image and reply with a JSON object with exactly these fields:
- predictedDisease: the most likely skin disease (string)
- confidence: your confidence as a number between 0 and 1
- details: one sentence explaining the prediction in the voice of the {model_type.value} model

Output the JSON object only, with no extra prose.

Image:"""
    return [text, blob]


def parse_prediction(reply: str) -> PredictionResult:
    try:
        return PredictionResult.model_validate_json(reply)
    except ValidationError as e:
        logger.warning(f"[prediction] reply does not match schema: {reply[:200]!r}")
        raise SchemaValidationError(
            f"Inference reply did not match the expected shape ({e.error_count()} error(s))."
        ) from e


def predict_disease(
    blob: ImageBlob,
    model_type: ModelType,
    service: Optional[InferenceService] = None,
) -> PredictionResult:
    """ImageBlob + model selector → PredictionResult via the generative inference service."""
    service = service or get_inference_service()
    reply = service.generate(build_instruction(blob, model_type), PREDICTION_RESPONSE_SCHEMA)
    result = parse_prediction(reply)
    logger.info(f"[prediction] {model_type.value}: {result.predictedDisease} ({result.confidence:.3f})")
    return result
