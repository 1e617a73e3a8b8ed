# main.py
import logging

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from starlette.exceptions import HTTPException

from backend.app.config import (
    ALLOWED_MEDIA_TYPES,
    DISCLAIMER,
    FRONTEND_DIR,
    GEMINI_API_KEY,
    GEMINI_MODEL,
    LOG_LEVEL,
    MAX_FORM_PART_SIZE,
)
from backend.app.inference import InferenceService, get_inference_service
from backend.app.pipeline import error_outcome, handle_prediction
from backend.app.prediction import MODEL_PERSONAS
from backend.app.schemas import (
    DEFAULT_MODEL_TYPE,
    ImageBlob,
    ModelInfo,
    ModelsResponse,
    RequestOutcome,
)

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("skinvision.api")

# ---------------- App ----------------
app = FastAPI(title="SkinVision AI")

# CORS: wide-open for development. Restrict in production.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # e.g., ["http://localhost:3000"]
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------- Lifecycle ----------------
@app.on_event("startup")
def _startup():
    logger.info(f"[api] starting SkinVision AI (gemini_model={GEMINI_MODEL})")
    if not GEMINI_API_KEY:
        logger.warning("[api] GEMINI_API_KEY is not set; predictions will fail until it is configured.")


# ---------------- Health ----------------
@app.get("/healthz")
async def healthz():
    return {"ok": True}


# ---------------- Frontend ----------------
@app.get("/", response_class=HTMLResponse)
async def root():
    """
    Serve the single-page frontend. Uses absolute path to avoid CWD issues.
    """
    index_path = FRONTEND_DIR / "index.html"
    if not index_path.exists():
        return HTMLResponse(
            "<h1>Frontend not found</h1><p>Expected at ./frontend/index.html</p>",
            status_code=404,
        )
    return HTMLResponse(index_path.read_text(encoding="utf-8"))


@app.get("/models", response_model=ModelsResponse)
async def list_models():
    return ModelsResponse(
        models=[ModelInfo(name=m, description=p["description"]) for m, p in MODEL_PERSONAS.items()],
        default=DEFAULT_MODEL_TYPE,
        disclaimer=DISCLAIMER,
    )


# ---------------- Inference ----------------
@app.post("/predict", response_model=RequestOutcome)
async def predict(
    request: Request,
    service: InferenceService = Depends(get_inference_service),
):
    """
    Form fields `photoDataUri` (data URI) + `modelType` (CNN | VGG16 | ResNet50).
    Always answers 200; failures are reported in the `error` field.
    """
    try:
        # Data URIs of ordinary photos are well past Starlette's default 1 MB part limit
        form = await request.form(max_part_size=MAX_FORM_PART_SIZE)
    except HTTPException as e:
        logger.info(f"[api] rejected form body: {e.detail}")
        return error_outcome(f"Invalid form data: {e.detail}")

    raw_form = {"photoDataUri": form.get("photoDataUri"), "modelType": form.get("modelType")}
    return await run_in_threadpool(handle_prediction, raw_form, service)


@app.post("/predict/upload", response_model=RequestOutcome)
async def predict_upload(
    file: UploadFile = File(...),
    modelType: str = Form(DEFAULT_MODEL_TYPE.value),
    service: InferenceService = Depends(get_inference_service),
):
    """
    Multipart variant: the server builds the data URI from the uploaded file,
    then runs the same pipeline as /predict.
    """
    content_type = file.content_type or ""
    if content_type not in ALLOWED_MEDIA_TYPES:
        logger.info(f"[api] rejected upload {file.filename!r} with content type {content_type!r}")
        return error_outcome(f"Unsupported image type '{content_type}'. Please upload PNG, JPG, or WEBP.")

    image_bytes = await file.read()
    photo_data_uri = ImageBlob.from_bytes(content_type, image_bytes).to_data_uri() if image_bytes else ""

    # Preprocessing and the Gemini call both block
    return await run_in_threadpool(
        handle_prediction,
        {"photoDataUri": photo_data_uri, "modelType": modelType},
        service,
    )
