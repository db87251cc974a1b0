# telecare/models.py
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Boolean, Date, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserType(str, enum.Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    # No transition leads here yet; kept so stored rows stay valid.
    COMPLETED = "completed"


# --- 1. USER PROFILES ---
class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    username = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=False)
    user_type = Column(String, nullable=False, default=UserType.PATIENT.value)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan")
    appointment_requests = relationship("AppointmentRequest", back_populates="patient")


# --- 2. SIGN-IN SESSIONS ---
class AuthSession(Base):
    __tablename__ = "auth_sessions"

    token = Column(String(64), primary_key=True)
    user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", back_populates="sessions")


# --- 3. APPOINTMENT REQUESTS ---
class AppointmentRequest(Base):
    __tablename__ = "appointment_requests"

    id = Column(String(32), primary_key=True, default=new_id)
    patient_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    patient_username = Column(String, nullable=False)
    symptoms = Column(Text, nullable=False)
    diagnosis = Column(Text, nullable=False)
    medication = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=RequestStatus.PENDING.value, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    scheduled_date = Column(Date, nullable=True)
    scheduled_time = Column(String, nullable=True)
    flagged_for_review = Column(Boolean, nullable=False, default=False)
    resubmission_comment = Column(Text, nullable=True)

    patient = relationship("User", back_populates="appointment_requests")
    appointment = relationship("Appointment", back_populates="request", uselist=False)


# --- 4. APPOINTMENTS ---
class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(32), primary_key=True, default=new_id)
    # One appointment per request, even if two doctors confirm at once.
    request_id = Column(String(32), ForeignKey("appointment_requests.id"), unique=True, nullable=False)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(String, nullable=False)
    assigned_doctor = Column(String, index=True, nullable=False)
    patient_username = Column(String, nullable=False)
    diagnosis = Column(Text, nullable=True)
    medication = Column(Text, nullable=True)

    request = relationship("AppointmentRequest", back_populates="appointment")
