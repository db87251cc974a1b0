# telecare/appointment_workflow.py
"""
Appointment-request lifecycle.

    pending --schedule--> scheduled        (completed is never reached)
    pending --flag--> pending+flagged --resubmit--> pending

Every transition is a conditional UPDATE on (id, status, flag) so a request
that another client already moved is reported instead of overwritten.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .models import Appointment, AppointmentRequest, RequestStatus, User
from .utils import AVAILABLE_TIME_SLOTS, format_long_date, is_valid_time_slot, parse_time_slot

logger = logging.getLogger(__name__)

DEFAULT_PATIENT_NAME = "Anonymous"
DEFAULT_DOCTOR_NAME = "Doctor"


# =========================================================================
# ERRORS
# =========================================================================
class WorkflowError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationFailed(WorkflowError):
    status_code = 400


class NotRequestOwner(WorkflowError):
    status_code = 403


class RequestNotFound(WorkflowError):
    status_code = 404


class InvalidTransition(WorkflowError):
    status_code = 409


def doctor_display_name(doctor: User) -> str:
    return doctor.username or DEFAULT_DOCTOR_NAME


async def _get_request(db: AsyncSession, request_id: str) -> AppointmentRequest:
    appt_request = await db.get(AppointmentRequest, request_id, populate_existing=True)
    if not appt_request:
        raise RequestNotFound(f"Appointment request {request_id} not found")
    return appt_request


async def _explain_rejected(db: AsyncSession, request_id: str, action: str) -> WorkflowError:
    appt_request = await _get_request(db, request_id)
    if appt_request.status != RequestStatus.PENDING.value:
        return InvalidTransition(f"Cannot {action}: request is already {appt_request.status}")
    if appt_request.flagged_for_review:
        return InvalidTransition(f"Cannot {action}: request is flagged for review")
    return InvalidTransition(f"Cannot {action}: request is not flagged for review")


# =========================================================================
# 1. CREATE (patient, after voice processing)
# =========================================================================
async def create_request(db: AsyncSession, patient: User, symptoms: str, diagnosis: str) -> AppointmentRequest:
    if not (symptoms or "").strip() or not (diagnosis or "").strip():
        raise ValidationFailed("Please complete the voice recording and processing first.")

    appt_request = AppointmentRequest(
        patient_id=patient.id,
        patient_username=patient.username or DEFAULT_PATIENT_NAME,
        symptoms=symptoms,
        diagnosis=diagnosis,
        status=RequestStatus.PENDING.value,
        flagged_for_review=False,
    )
    db.add(appt_request)
    await db.commit()
    await db.refresh(appt_request)
    logger.info("WORKFLOW: Request %s created by patient %s", appt_request.id, patient.id)
    return appt_request


# =========================================================================
# 2. READS
# =========================================================================
async def list_patient_requests(db: AsyncSession, patient: User) -> List[AppointmentRequest]:
    res = await db.execute(
        select(AppointmentRequest)
        .where(AppointmentRequest.patient_id == patient.id)
        .order_by(AppointmentRequest.created_at.desc())
    )
    return list(res.scalars().all())


async def list_pending_queue(db: AsyncSession) -> List[AppointmentRequest]:
    """Pending requests a doctor can act on. Flagged ones wait for the patient."""
    res = await db.execute(
        select(AppointmentRequest)
        .where(
            AppointmentRequest.status == RequestStatus.PENDING.value,
            AppointmentRequest.flagged_for_review.is_(False),
        )
        .order_by(AppointmentRequest.created_at.asc())
    )
    return list(res.scalars().all())


async def list_doctor_appointments(db: AsyncSession, doctor: User) -> List[Appointment]:
    res = await db.execute(
        select(Appointment).where(Appointment.assigned_doctor == doctor_display_name(doctor))
    )
    appointments = list(res.scalars().all())
    appointments.sort(key=lambda a: (a.appointment_date, parse_time_slot(a.appointment_time)))
    return appointments


# =========================================================================
# 3. TRANSITIONS
# =========================================================================
async def schedule_request(
    db: AsyncSession,
    request_id: str,
    doctor: User,
    scheduled_date: Optional[date],
    time_slot: Optional[str],
    medication: Optional[str],
    today: Optional[date] = None,
) -> Tuple[AppointmentRequest, Appointment]:
    if not scheduled_date or not time_slot:
        raise ValidationFailed("Please select a date and time slot.")
    if not is_valid_time_slot(time_slot):
        raise ValidationFailed(f"Time slot must be one of: {', '.join(AVAILABLE_TIME_SLOTS)}")
    if scheduled_date < (today or date.today()):
        raise ValidationFailed("Cannot schedule an appointment in the past.")
    medication = (medication or "").strip()
    if not medication:
        raise ValidationFailed("Please enter basic medication details.")

    res = await db.execute(
        update(AppointmentRequest)
        .where(
            AppointmentRequest.id == request_id,
            AppointmentRequest.status == RequestStatus.PENDING.value,
            AppointmentRequest.flagged_for_review.is_(False),
        )
        .values(
            status=RequestStatus.SCHEDULED.value,
            scheduled_date=scheduled_date,
            scheduled_time=time_slot,
            medication=medication,
        )
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise await _explain_rejected(db, request_id, "schedule")

    appt_request = await _get_request(db, request_id)
    appointment = Appointment(
        request_id=appt_request.id,
        appointment_date=scheduled_date,
        appointment_time=time_slot,
        assigned_doctor=doctor_display_name(doctor),
        patient_username=appt_request.patient_username,
        diagnosis=appt_request.diagnosis,
        medication=medication,
    )
    db.add(appointment)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning("WORKFLOW: Duplicate appointment for request %s rejected", request_id)
        raise InvalidTransition("Cannot schedule: request already has an appointment")

    await db.refresh(appointment)
    logger.info(
        "WORKFLOW: Request %s scheduled by %s for %s at %s",
        request_id, appointment.assigned_doctor, format_long_date(scheduled_date), time_slot,
    )
    return appt_request, appointment


async def flag_request(db: AsyncSession, request_id: str) -> AppointmentRequest:
    res = await db.execute(
        update(AppointmentRequest)
        .where(
            AppointmentRequest.id == request_id,
            AppointmentRequest.status == RequestStatus.PENDING.value,
            AppointmentRequest.flagged_for_review.is_(False),
        )
        .values(flagged_for_review=True)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise await _explain_rejected(db, request_id, "flag")
    await db.commit()
    logger.info("WORKFLOW: Request %s flagged for review", request_id)
    return await _get_request(db, request_id)


async def resubmit_request(
    db: AsyncSession,
    request_id: str,
    patient: User,
    symptoms: str,
    comment: Optional[str] = "",
) -> AppointmentRequest:
    if not (symptoms or "").strip():
        raise ValidationFailed("Symptoms cannot be empty.")

    appt_request = await _get_request(db, request_id)
    if appt_request.patient_id != patient.id:
        raise NotRequestOwner("You can only resubmit your own requests")

    res = await db.execute(
        update(AppointmentRequest)
        .where(
            AppointmentRequest.id == request_id,
            AppointmentRequest.patient_id == patient.id,
            AppointmentRequest.status == RequestStatus.PENDING.value,
            AppointmentRequest.flagged_for_review.is_(True),
        )
        .values(
            symptoms=symptoms,
            flagged_for_review=False,
            resubmission_comment=comment or "",
        )
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise await _explain_rejected(db, request_id, "resubmit")
    await db.commit()
    logger.info("WORKFLOW: Request %s resubmitted by patient %s", request_id, patient.id)
    return await _get_request(db, request_id)
