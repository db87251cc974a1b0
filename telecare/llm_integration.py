# telecare/llm_integration.py
import logging

import httpx
from langchain_core.messages import SystemMessage, HumanMessage
from langchain_groq import ChatGroq
from langchain_openai import ChatOpenAI

from .config import (
    AI_TIMEOUT,
    GROQ_API_KEY,
    GROQ_MODEL,
    LLM_PROVIDER,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
    OPENAI_CHAT_MODEL,
    TRANSCRIPTION_MODEL,
)

logger = logging.getLogger(__name__)

DIAGNOSIS_SYSTEM_PROMPT = (
    "You are a medical assistant. Based on the transcript from a patient's spoken audio, "
    "provide a one-line medical diagnosis suitable for a doctor."
)
DIAGNOSIS_TEMPERATURE = 0.3


class PipelineError(Exception):
    """A voice pipeline step failed; message is the provider's."""


class TranscriptionError(PipelineError):
    pass


class DiagnosisError(PipelineError):
    pass


def get_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=AI_TIMEOUT)


def get_llm():
    """
    Returns the LangChain chat model used for diagnosis.
    """
    if LLM_PROVIDER == "groq":
        return ChatGroq(
            temperature=DIAGNOSIS_TEMPERATURE,
            model_name=GROQ_MODEL,
            api_key=GROQ_API_KEY,
        )

    return ChatOpenAI(
        temperature=DIAGNOSIS_TEMPERATURE,
        model=OPENAI_CHAT_MODEL,
        api_key=OPENAI_API_KEY,
        base_url=OPENAI_BASE_URL,
        timeout=AI_TIMEOUT,
    )


# --- 1. TRANSCRIPTION ---
async def transcribe_audio(audio: bytes, filename: str = "audio.mp3", content_type: str = "audio/mp3") -> str:
    if not audio:
        raise TranscriptionError("No audio was recorded")

    headers = {"Authorization": f"Bearer {OPENAI_API_KEY}"}
    files = {"file": (filename, audio, content_type)}
    data = {"model": TRANSCRIPTION_MODEL}

    async with get_http_client() as client:
        try:
            resp = await client.post(f"{OPENAI_BASE_URL}/audio/transcriptions", headers=headers, files=files, data=data)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("TRANSCRIPTION: %s - %s", e.response.status_code, e.response.text)
            raise TranscriptionError(f"Transcription failed: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("TRANSCRIPTION: Cannot reach endpoint. %s", e)
            raise TranscriptionError(f"Transcription failed: {e}") from e

    try:
        text = (resp.json().get("text") or "").strip()
    except (ValueError, AttributeError) as e:
        logger.error("TRANSCRIPTION: Unreadable response body: %.200s", resp.text)
        raise TranscriptionError("Transcription returned an unreadable response") from e
    if not text:
        raise TranscriptionError("Transcription returned no text")
    logger.info("TRANSCRIPTION: Received %d characters", len(text))
    return text


# --- 2. DIAGNOSIS ---
async def get_diagnosis_from_transcript(transcript: str) -> str:
    messages = [
        SystemMessage(content=DIAGNOSIS_SYSTEM_PROMPT),
        HumanMessage(content=transcript),
    ]
    try:
        llm = get_llm()
        response = await llm.ainvoke(messages)
    except Exception as e:
        logger.error("DIAGNOSIS (%s): %s", LLM_PROVIDER, e)
        raise DiagnosisError(f"Diagnosis failed: {e}") from e

    diagnosis = (response.content or "").strip()
    if not diagnosis:
        raise DiagnosisError("Diagnosis returned no text")
    return diagnosis
