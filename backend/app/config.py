# config.py
import os
from pathlib import Path

from dotenv import load_dotenv

# Local development: pick up GEMINI_API_KEY etc. from a .env file if present.
load_dotenv()

# ---------------- Paths ----------------
APP_DIR = Path(__file__).parent.resolve()           # backend/app
PROJECT_ROOT = (APP_DIR / "../..").resolve()         # root
FRONTEND_DIR = (PROJECT_ROOT / "frontend").resolve()

# ---------------- Gemini ----------------
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "0.4"))

# ---------------- Logging ----------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ---------------- Image preprocessing ----------------
TARGET_SIZE = 224
BLUR_RADIUS = 0.5
# Percent of darkest/lightest pixels clipped before stretching contrast
NORMALIZE_CUTOFF = 1

# Media types accepted by the upload endpoint
ALLOWED_MEDIA_TYPES = ("image/png", "image/jpeg", "image/webp")

DISCLAIMER = (
    "This is an AI-generated prediction and not a substitute for professional "
    "medical advice. Please consult a qualified doctor for an accurate diagnosis "
    "and treatment plan."
)

# Largest single form field accepted by /predict (base64 data URIs run ~4/3 of the file size)
MAX_FORM_PART_SIZE = int(os.getenv("MAX_FORM_PART_SIZE", str(20 * 1024 * 1024)))
