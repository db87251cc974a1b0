# telecare/voice_api.py
import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from sqlalchemy.ext.asyncio import AsyncSession

from . import appointment_workflow as workflow
from .config import MAX_AUDIO_BYTES, RECORDING_TTL_MINUTES
from .database import get_async_session
from .llm_integration import PipelineError, get_diagnosis_from_transcript, transcribe_audio
from .models import User
from .schemas import AppointmentRequestOut, MedicalReport, RecordingOut
from .security import get_current_patient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/voice", tags=["Voice Pipeline"])

PROCESSING_FAILED = "Failed to process your recording. Please try again."


# =========================================================================
# PIPELINE: audio -> transcript -> diagnosis
# =========================================================================
async def process_audio(audio: bytes, filename: str = "audio.mp3", content_type: str = "audio/mp3") -> MedicalReport:
    logger.info("VOICE: Transcribing %d bytes of audio...", len(audio))
    transcript = await transcribe_audio(audio, filename=filename, content_type=content_type)
    logger.info("VOICE: Generating diagnosis...")
    diagnosis = await get_diagnosis_from_transcript(transcript)
    return MedicalReport(transcript=transcript, diagnosis=diagnosis)


# =========================================================================
# RECORDING SESSIONS (press-and-hold capture)
# =========================================================================
def _clock() -> float:
    return time.monotonic()


@dataclass
class RecordingSession:
    patient_id: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    is_recording: bool = False
    chunks: List[bytes] = field(default_factory=list)
    report: MedicalReport = field(default_factory=MedicalReport)
    touched_at: float = field(default_factory=lambda: _clock())

    @property
    def size(self) -> int:
        return sum(len(c) for c in self.chunks)

    def start(self):
        # A new recording replaces whatever the last one produced.
        self.chunks = []
        self.report = MedicalReport()
        self.is_recording = True

    def add_chunk(self, data: bytes):
        if data:
            self.chunks.append(data)

    def stop(self) -> bytes:
        audio = b"".join(self.chunks)
        self.chunks = []
        self.is_recording = False
        return audio

    def to_out(self) -> RecordingOut:
        return RecordingOut(
            id=self.id,
            is_recording=self.is_recording,
            chunk_count=len(self.chunks),
            report=self.report,
        )


class RecordingStore:
    """In-memory recordings. Idle ones are dropped after RECORDING_TTL_MINUTES."""

    def __init__(self):
        self._sessions: Dict[str, RecordingSession] = {}
        self._lock = asyncio.Lock()

    def _evict_expired(self, now: float):
        cutoff = now - RECORDING_TTL_MINUTES * 60
        expired = [sid for sid, s in self._sessions.items() if s.touched_at < cutoff]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("VOICE: Dropped %d idle recording(s)", len(expired))

    async def open(self, patient: User) -> RecordingSession:
        async with self._lock:
            self._evict_expired(_clock())
            session = RecordingSession(patient_id=patient.id)
            session.start()
            self._sessions[session.id] = session
            return session

    async def get(self, recording_id: str, patient: User) -> RecordingSession:
        async with self._lock:
            now = _clock()
            self._evict_expired(now)
            session = self._sessions.get(recording_id)
            if session and session.patient_id == patient.id:
                session.touched_at = now
        if not session:
            raise HTTPException(status_code=404, detail="Recording not found")
        if session.patient_id != patient.id:
            raise HTTPException(status_code=403, detail="Not your recording")
        return session

    async def release(self, recording_id: str, patient: User):
        session = await self.get(recording_id, patient)
        async with self._lock:
            self._sessions.pop(session.id, None)

    async def clear(self):
        async with self._lock:
            self._sessions.clear()


recordings = RecordingStore()


def _check_audio_size(size: int):
    if size > MAX_AUDIO_BYTES:
        raise HTTPException(status_code=413, detail="Recording is too long. Please keep it under 25 MB.")


async def _run_pipeline(audio: bytes, filename: str = "audio.mp3", content_type: str = "audio/mp3") -> MedicalReport:
    if not audio:
        raise HTTPException(status_code=400, detail="No audio was recorded")
    try:
        return await process_audio(audio, filename=filename, content_type=content_type)
    except PipelineError as e:
        logger.error("VOICE: Processing error: %s", e)
        raise HTTPException(status_code=502, detail=PROCESSING_FAILED)


@router.post("/recordings", response_model=RecordingOut, status_code=201)
async def start_recording(patient: User = Depends(get_current_patient)):
    session = await recordings.open(patient)
    return session.to_out()


@router.post("/recordings/{recording_id}/start", response_model=RecordingOut)
async def restart_recording(recording_id: str, patient: User = Depends(get_current_patient)):
    session = await recordings.get(recording_id, patient)
    session.start()
    return session.to_out()


@router.post("/recordings/{recording_id}/chunks", response_model=RecordingOut)
async def upload_chunk(recording_id: str, chunk: UploadFile = File(...), patient: User = Depends(get_current_patient)):
    session = await recordings.get(recording_id, patient)
    if not session.is_recording:
        raise HTTPException(status_code=409, detail="Recording is not in progress")
    data = await chunk.read()
    _check_audio_size(session.size + len(data))
    session.add_chunk(data)
    return session.to_out()


@router.post("/recordings/{recording_id}/stop", response_model=RecordingOut)
async def stop_recording(recording_id: str, patient: User = Depends(get_current_patient)):
    session = await recordings.get(recording_id, patient)
    if not session.is_recording:
        raise HTTPException(status_code=409, detail="Recording is not in progress")
    audio = session.stop()
    session.report = await _run_pipeline(audio)
    return session.to_out()


@router.post("/recordings/{recording_id}/confirm", response_model=AppointmentRequestOut, status_code=201)
async def confirm_recording(
    recording_id: str,
    patient: User = Depends(get_current_patient),
    db: AsyncSession = Depends(get_async_session),
):
    session = await recordings.get(recording_id, patient)
    report = session.report
    if not report.is_complete:
        raise HTTPException(status_code=400, detail="Please complete the voice recording and processing first.")
    # Claim the report before awaiting so a concurrent confirm finds it empty.
    session.report = MedicalReport()
    try:
        return await workflow.create_request(db, patient, report.transcript, report.diagnosis)
    except Exception:
        session.report = report
        raise


@router.delete("/recordings/{recording_id}", status_code=204)
async def release_recording(recording_id: str, patient: User = Depends(get_current_patient)):
    await recordings.release(recording_id, patient)


# =========================================================================
# ONE-SHOT UPLOAD
# =========================================================================
@router.post("/process", response_model=MedicalReport)
async def process_upload(file: UploadFile = File(...), patient: User = Depends(get_current_patient)):
    audio = await file.read()
    _check_audio_size(len(audio))
    return await _run_pipeline(
        audio,
        filename=file.filename or "audio.mp3",
        content_type=file.content_type or "audio/mp3",
    )
