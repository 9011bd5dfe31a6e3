"""
Engine Configuration

Loads environment variables and provides configuration settings.
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load .env.local first (for local development), then .env as fallback
env_local = Path(__file__).parent.parent / '.env.local'
env_file = Path(__file__).parent.parent / '.env'

if env_local.exists():
    load_dotenv(env_local)
elif env_file.exists():
    load_dotenv(env_file)

# Gemini (text generation)
GEMINI_API_KEY = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")

if not GEMINI_API_KEY:
    logger.warning(
        "GOOGLE_API_KEY not found - therapeutic replies will use fallback mode"
    )

# Cloud Natural Language proxy (sentiment)
LANGUAGE_PROXY_URL = os.getenv("LANGUAGE_PROXY_URL") or None
LANGUAGE_CODE = os.getenv("LANGUAGE_CODE", "en")
LANGUAGE_TIMEOUT_SECONDS = float(os.getenv("LANGUAGE_TIMEOUT_SECONDS", "5.0"))

# MongoDB Config
MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "bloom")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
