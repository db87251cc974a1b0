# telecare/schemas.py
from pydantic import BaseModel, EmailStr, ConfigDict, Field, computed_field
from typing import Optional
from datetime import date, datetime

from .models import UserType, RequestStatus
from .utils import format_long_date


# --- Base Configuration ---
class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- Auth & Profile Schemas ---
class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    username: Optional[str] = None
    user_type: UserType = UserType.PATIENT


class SignInRequest(BaseModel):
    email: EmailStr
    password: str


class UserProfile(BaseSchema):
    """Public profile; never carries the password hash."""
    id: str
    username: Optional[str] = None
    email: EmailStr
    user_type: UserType


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserProfile


# --- Appointment Request Schemas ---
class AppointmentRequestCreate(BaseModel):
    symptoms: str
    diagnosis: str


class AppointmentRequestOut(BaseSchema):
    id: str
    patient_id: str
    patient_username: str
    symptoms: str
    diagnosis: str
    medication: Optional[str] = None
    status: RequestStatus
    created_at: datetime
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    flagged_for_review: bool = False
    resubmission_comment: Optional[str] = None


class ScheduleRequest(BaseModel):
    scheduled_date: date
    time_slot: str
    medication: str


class ResubmitRequest(BaseModel):
    symptoms: str
    comment: Optional[str] = ""


# --- Appointment Schemas ---
class AppointmentOut(BaseSchema):
    id: str
    request_id: str
    appointment_date: date
    appointment_time: str
    assigned_doctor: str
    patient_username: str
    diagnosis: Optional[str] = None
    medication: Optional[str] = None

    @computed_field
    @property
    def appointment_date_display(self) -> str:
        """Long form shown on appointment cards, e.g. 'October 19th, 2026'."""
        return format_long_date(self.appointment_date)


class ScheduleResult(BaseModel):
    request: AppointmentRequestOut
    appointment: AppointmentOut
    message: str


# --- Voice Pipeline Schemas ---
class MedicalReport(BaseModel):
    transcript: Optional[str] = None
    diagnosis: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.transcript and self.diagnosis)


class RecordingOut(BaseModel):
    id: str
    is_recording: bool
    chunk_count: int
    report: MedicalReport
