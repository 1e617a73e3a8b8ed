# errors.py
class SkinVisionError(Exception):
    """Base class for failures inside the prediction pipeline."""


class FormValidationError(SkinVisionError):
    """Missing or malformed form fields."""


class ImageDecodeError(SkinVisionError):
    """The submitted data URI or its bytes are not a readable image."""


class InferenceTransportError(SkinVisionError):
    """The generative inference service could not be reached or refused the call."""


class SchemaValidationError(SkinVisionError):
    """The inference reply does not match the PredictionResult shape."""
