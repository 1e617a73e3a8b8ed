# pipeline.py
import logging
import threading
import time
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from backend.app.errors import FormValidationError
from backend.app.image_preprocessing import normalize_image
from backend.app.inference import InferenceService
from backend.app.prediction import predict_disease
from backend.app.schemas import ImageBlob, PredictionForm, PredictionResult, RequestOutcome

logger = logging.getLogger("skinvision.pipeline")

IMAGE_REQUIRED_MESSAGE = "Image is required."
INVALID_FORM_MESSAGE = "Invalid form data."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."


class OutcomeClock:
    """Epoch-millisecond timestamps that strictly increase within the process."""

    def __init__(self):
        self._lock = threading.Lock()
        self._last = 0

    def now(self) -> int:
        with self._lock:
            self._last = max(int(time.time() * 1000), self._last + 1)
            return self._last


_clock = OutcomeClock()


def validate_form(raw_form: Mapping[str, Any]) -> PredictionForm:
    try:
        return PredictionForm.model_validate({
            "photoDataUri": raw_form.get("photoDataUri"),
            "modelType": raw_form.get("modelType"),
        })
    except ValidationError as e:
        bad_fields = {err["loc"][0] for err in e.errors() if err["loc"]}
        if "photoDataUri" in bad_fields:
            raise FormValidationError(IMAGE_REQUIRED_MESSAGE) from e
        raise FormValidationError(INVALID_FORM_MESSAGE) from e


def error_outcome(message: str) -> RequestOutcome:
    return RequestOutcome(error=message, timestamp=_clock.now())


def _success(prediction: PredictionResult) -> RequestOutcome:
    return RequestOutcome(prediction=prediction, timestamp=_clock.now())


def handle_prediction(
    raw_form: Mapping[str, Any],
    service: Optional[InferenceService] = None,
) -> RequestOutcome:
    """
    Single entry point for a form submission:
      1) validate fields
      2) normalize the image
      3) predict with the selected model
    Every failure is turned into RequestOutcome.error; nothing is raised.
    """
    try:
        form = validate_form(raw_form)
    except FormValidationError as e:
        logger.info(f"[pipeline] rejected form: {e}")
        return error_outcome(str(e))

    try:
        blob = normalize_image(ImageBlob.from_data_uri(form.photoDataUri))
        prediction = predict_disease(blob, form.modelType, service=service)
    except Exception as e:
        logger.exception(f"[pipeline] prediction failed (model={form.modelType.value}): {e}")
        message = str(e) or UNEXPECTED_ERROR_MESSAGE
        return error_outcome(f"Prediction failed: {message}")

    return _success(prediction)
