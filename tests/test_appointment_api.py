from datetime import date, timedelta

from telecare.utils import format_long_date

TOMORROW = date.today() + timedelta(days=1)


async def _submit(client, headers, symptoms="sore throat", diagnosis="Pharyngitis"):
    resp = await client.post("/appointment-requests", headers=headers, json={
        "symptoms": symptoms,
        "diagnosis": diagnosis,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_patient_submits_and_lists_requests(client, patient_headers):
    created = await _submit(client, patient_headers)
    assert created["status"] == "pending"
    assert created["patient_username"] == "Jane Patient"
    assert created["flagged_for_review"] is False

    resp = await client.get("/appointment-requests/mine", headers=patient_headers)
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()] == [created["id"]]


async def test_roles_are_enforced(client, patient_headers, doctor_headers):
    created = await _submit(client, patient_headers)

    assert (await client.get("/appointment-requests/pending", headers=patient_headers)).status_code == 403
    assert (await client.post(f"/appointment-requests/{created['id']}/flag", headers=patient_headers)).status_code == 403
    resp = await client.post("/appointment-requests", headers=doctor_headers, json={"symptoms": "x", "diagnosis": "y"})
    assert resp.status_code == 403


async def test_full_flag_and_resubmit_cycle(client, patient_headers, doctor_headers):
    created = await _submit(client, patient_headers)

    resp = await client.post(f"/appointment-requests/{created['id']}/flag", headers=doctor_headers)
    assert resp.status_code == 200
    assert resp.json()["flagged_for_review"] is True

    queue = (await client.get("/appointment-requests/pending", headers=doctor_headers)).json()
    assert created["id"] not in [r["id"] for r in queue]

    resp = await client.post(f"/appointment-requests/{created['id']}/resubmit", headers=patient_headers, json={
        "symptoms": "sore throat and fever",
        "comment": "fever started yesterday",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == created["id"]
    assert body["flagged_for_review"] is False
    assert body["resubmission_comment"] == "fever started yesterday"

    queue = (await client.get("/appointment-requests/pending", headers=doctor_headers)).json()
    assert [r["id"] for r in queue] == [created["id"]]


async def test_schedule_creates_assigned_appointment(client, patient_headers, doctor_headers):
    created = await _submit(client, patient_headers)

    resp = await client.post(f"/appointment-requests/{created['id']}/schedule", headers=doctor_headers, json={
        "scheduled_date": TOMORROW.isoformat(),
        "time_slot": "3:00 PM",
        "medication": "Lozenges",
    })
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["request"]["status"] == "scheduled"
    assert body["appointment"]["assigned_doctor"] == "Dr. House"
    assert body["appointment"]["appointment_date"] == TOMORROW.isoformat()
    assert body["appointment"]["appointment_date_display"] == format_long_date(TOMORROW)
    assert body["message"] == f"Appointment scheduled for {format_long_date(TOMORROW)} at 3:00 PM"

    again = await client.post(f"/appointment-requests/{created['id']}/schedule", headers=doctor_headers, json={
        "scheduled_date": TOMORROW.isoformat(),
        "time_slot": "4:00 PM",
        "medication": "Lozenges",
    })
    assert again.status_code == 409

    assigned = (await client.get("/appointments/assigned", headers=doctor_headers)).json()
    assert len(assigned) == 1
    assert assigned[0]["request_id"] == created["id"]
    assert assigned[0]["patient_username"] == "Jane Patient"
    assert assigned[0]["appointment_date_display"] == format_long_date(TOMORROW)

    mine = (await client.get("/appointment-requests/mine", headers=patient_headers)).json()
    assert mine[0]["scheduled_time"] == "3:00 PM"
    assert mine[0]["medication"] == "Lozenges"


async def test_schedule_validation_errors_surface_as_400(client, patient_headers, doctor_headers):
    created = await _submit(client, patient_headers)
    resp = await client.post(f"/appointment-requests/{created['id']}/schedule", headers=doctor_headers, json={
        "scheduled_date": TOMORROW.isoformat(),
        "time_slot": "3:00 PM",
        "medication": "  ",
    })
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Please enter basic medication details."


async def test_unknown_request_returns_404(client, doctor_headers):
    resp = await client.post("/appointment-requests/does-not-exist/flag", headers=doctor_headers)
    assert resp.status_code == 404


async def test_time_slots_listed(client):
    resp = await client.get("/appointments/time-slots")
    assert resp.json() == ["9:00 AM", "10:00 AM", "11:00 AM", "2:00 PM", "3:00 PM", "4:00 PM"]
