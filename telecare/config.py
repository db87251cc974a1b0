# telecare/config.py
import os
import logging
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")

# --- AI Providers ---
# "openai" uses ChatOpenAI for diagnosis, "groq" uses ChatGroq.
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai").lower()

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")
OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o")
TRANSCRIPTION_MODEL = os.getenv("TRANSCRIPTION_MODEL", "whisper-1")

GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama3-8b-8192")

AI_TIMEOUT = float(os.getenv("AI_TIMEOUT", "60"))

# --- Auth ---
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "168"))

# --- Voice Recordings ---
# Whisper rejects uploads above 25 MB.
MAX_AUDIO_BYTES = int(os.getenv("MAX_AUDIO_BYTES", str(25 * 1024 * 1024)))
RECORDING_TTL_MINUTES = int(os.getenv("RECORDING_TTL_MINUTES", "30"))

if not DATABASE_URL:
    raise ValueError("No DATABASE_URL set in .env")

if LLM_PROVIDER not in ("openai", "groq"):
    raise ValueError(f"Unsupported LLM_PROVIDER '{LLM_PROVIDER}'")

# Transcription always goes through the OpenAI-compatible endpoint.
if not OPENAI_API_KEY:
    logger.warning("OPENAI_API_KEY is missing in .env. Voice transcription will fail.")

if LLM_PROVIDER == "groq" and not GROQ_API_KEY:
    logger.warning("LLM_PROVIDER is 'groq' but GROQ_API_KEY is missing in .env")
