"""
Basic configuration

- Backend location and device identity for the remote collaborator
- Supports environment variables (and a project-level .env file)
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file early
# Project root is the parent of kare/
PROJECT_ROOT = Path(__file__).parent.parent.parent
load_dotenv(dotenv_path=PROJECT_ROOT / '.env')

# Backend the client talks to
API_BASE_URL = os.getenv("KARE_API_BASE_URL", "http://localhost:8000").rstrip("/")
API_PREFIX = "/api/v1"

# Device identity sent as X-Device-ID on every request
# Empty means the client generates one per process
DEVICE_ID = os.getenv("KARE_DEVICE_ID", "").strip()

REQUEST_TIMEOUT_SECONDS = float(os.getenv("KARE_REQUEST_TIMEOUT_SECONDS", "5.0"))

# Quiet period before the financial questionnaire draft is written
AUTOSAVE_DEBOUNCE_SECONDS = float(os.getenv("KARE_AUTOSAVE_DEBOUNCE_SECONDS", "1.0"))

# Static eligibility question catalog
DEFAULT_QUESTIONS_PATH = Path(__file__).parent.parent / "data" / "questions.json"
QUESTIONS_PATH = Path(os.getenv("KARE_QUESTIONS_PATH", str(DEFAULT_QUESTIONS_PATH)))
