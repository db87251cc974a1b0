# telecare/appointment_api.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from . import appointment_workflow as workflow
from . import schemas as api_schemas
from .database import get_async_session
from .models import User
from .security import get_current_doctor, get_current_patient
from .utils import AVAILABLE_TIME_SLOTS, format_long_date

router = APIRouter()


# =========================================================================
# 1. PATIENT SIDE
# =========================================================================
@router.post("/appointment-requests", response_model=api_schemas.AppointmentRequestOut, status_code=201)
async def create_appointment_request(
    payload: api_schemas.AppointmentRequestCreate,
    patient: User = Depends(get_current_patient),
    session: AsyncSession = Depends(get_async_session),
):
    return await workflow.create_request(session, patient, payload.symptoms, payload.diagnosis)


@router.get("/appointment-requests/mine", response_model=List[api_schemas.AppointmentRequestOut])
async def get_my_requests(
    patient: User = Depends(get_current_patient),
    session: AsyncSession = Depends(get_async_session),
):
    return await workflow.list_patient_requests(session, patient)


@router.post("/appointment-requests/{request_id}/resubmit", response_model=api_schemas.AppointmentRequestOut)
async def resubmit_appointment_request(
    request_id: str,
    payload: api_schemas.ResubmitRequest,
    patient: User = Depends(get_current_patient),
    session: AsyncSession = Depends(get_async_session),
):
    return await workflow.resubmit_request(session, request_id, patient, payload.symptoms, payload.comment)


# =========================================================================
# 2. DOCTOR SIDE
# =========================================================================
@router.get("/appointment-requests/pending", response_model=List[api_schemas.AppointmentRequestOut])
async def get_pending_queue(
    doctor: User = Depends(get_current_doctor),
    session: AsyncSession = Depends(get_async_session),
):
    return await workflow.list_pending_queue(session)


@router.post("/appointment-requests/{request_id}/schedule", response_model=api_schemas.ScheduleResult)
async def schedule_appointment_request(
    request_id: str,
    payload: api_schemas.ScheduleRequest,
    doctor: User = Depends(get_current_doctor),
    session: AsyncSession = Depends(get_async_session),
):
    appt_request, appointment = await workflow.schedule_request(
        session, request_id, doctor, payload.scheduled_date, payload.time_slot, payload.medication
    )
    return api_schemas.ScheduleResult(
        request=api_schemas.AppointmentRequestOut.model_validate(appt_request),
        appointment=api_schemas.AppointmentOut.model_validate(appointment),
        message=f"Appointment scheduled for {format_long_date(appointment.appointment_date)} at {appointment.appointment_time}",
    )


@router.post("/appointment-requests/{request_id}/flag", response_model=api_schemas.AppointmentRequestOut)
async def flag_appointment_request(
    request_id: str,
    doctor: User = Depends(get_current_doctor),
    session: AsyncSession = Depends(get_async_session),
):
    return await workflow.flag_request(session, request_id)


@router.get("/appointments/assigned", response_model=List[api_schemas.AppointmentOut])
async def get_assigned_appointments(
    doctor: User = Depends(get_current_doctor),
    session: AsyncSession = Depends(get_async_session),
):
    return await workflow.list_doctor_appointments(session, doctor)


@router.get("/appointments/time-slots", response_model=List[str])
async def get_time_slots():
    return AVAILABLE_TIME_SLOTS
