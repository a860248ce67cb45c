import pytest

from medibook.core.security import issue_token
from medibook.modules.directory.sync import directory_sync
from medibook.modules.schedule.timeranges import DayOfWeek
from medibook.tenancy.context import tenant_context

API = "/api/v1"

async def register(client, n=1) -> dict:
    r = await client.post(f"{API}/directory/clinics", json={
        "name": f"Clinic {n}", "email": f"clinic{n}@example.com", "phone": f"+2010000001{n:02d}",
    })
    assert r.status_code == 201, r.text
    return r.json()

async def test_health(client):
    r = await client.get(f"{API}/health")
    assert r.json() == {"status": "ok"}

async def test_registration_exposes_directory_record(client):
    clinic = await register(client)
    assert clinic["database_name"] == f"clinic_{clinic['id']}"
    r = await client.get(f"{API}/directory/clinics/{clinic['id']}/record")
    assert r.json() == {"clinic_id": clinic["id"], "database_name": clinic["database_name"], "is_active": True}

async def test_booking_flow(client, next_weekday):
    clinic = await register(client)
    base = f"{API}/clinics/{clinic['id']}"

    doctor = (await client.post(f"{base}/doctors", json={"name": "Dr. Youssef", "specialty": "ent"})).json()
    r = await client.post(f"{base}/doctors/{doctor['id']}/working-hours", json={
        "day": "MONDAY", "start_time": "09:00:00", "end_time": "12:00:00", "fees": "120.00",
    })
    assert r.status_code == 201, r.text
    wh = r.json()[0]
    assert wh["waterfall"] is True

    monday = next_weekday(DayOfWeek.MONDAY).isoformat()
    slots = (await client.get(f"{base}/doctors/{doctor['id']}/slots", params={"on": monday})).json()
    assert [s["start_time"] for s in slots] == ["09:00:00"]

    payload = {"doctor_id": doctor["id"], "doctor_working_hour_id": wh["id"], "date": monday}
    first = await client.post(f"{base}/reservations", json=payload)
    assert first.status_code == 201, first.text
    assert first.json()["status"] == "pending"

    r = await client.patch(f"{base}/reservations/{first.json()['id']}", json={"status": "scheduled"})
    assert r.status_code == 200

    second = await client.post(f"{base}/reservations", json=payload)
    assert second.status_code == 409
    assert second.json()["code"] == "conflict"

    r = await client.post(f"{base}/reservations/{first.json()['id']}/cancel")
    assert r.json()["status"] == "cancelled"
    assert (await client.post(f"{base}/reservations", json=payload)).status_code == 201

    page = (await client.get(f"{base}/reservations")).json()
    assert page["meta"]["total"] == 2

    assert tenant_context.get() is None
    await directory_sync.drain()
    found = (await client.get(f"{API}/directory/doctors", params={"name": "youssef"})).json()
    assert found[0]["clinic_id"] == clinic["id"]

async def test_weekday_mismatch_is_422(client, next_weekday):
    clinic = await register(client)
    base = f"{API}/clinics/{clinic['id']}"
    doctor = (await client.post(f"{base}/doctors", json={"name": "Dr. Amr"})).json()
    wh = (await client.post(f"{base}/doctors/{doctor['id']}/working-hours", json={
        "day": "MONDAY", "start_time": "09:00:00", "end_time": "12:00:00",
    })).json()[0]
    r = await client.post(f"{base}/reservations", json={
        "doctor_id": doctor["id"], "doctor_working_hour_id": wh["id"],
        "date": next_weekday(DayOfWeek.WEDNESDAY).isoformat(),
    })
    assert r.status_code == 422
    assert r.json()["code"] == "invalid_input"

async def test_clinic_hours_endpoints(client):
    clinic = await register(client)
    base = f"{API}/clinics/{clinic['id']}"
    body = {"days": [{"day": "SUNDAY", "working_ranges": [{"start_time": "10:00:00", "end_time": "14:00:00"}]}]}
    assert (await client.put(f"{base}/working-hours", json=body)).status_code == 200
    r = await client.put(f"{base}/working-hours", json=body)
    assert r.status_code == 409
    assert "already exists" in r.json()["detail"]

    r = await client.put(f"{base}/break-hours", json={
        "days": [{"day": "SUNDAY", "break_ranges": [{"start_time": "13:00:00", "end_time": "14:01:00"}]}],
    })
    assert r.status_code == 422

    week = (await client.get(f"{base}/schedule")).json()
    assert [d["day"] for d in week] == ["SUNDAY"]
    found = (await client.get(f"{API}/directory/working-hours", params={"day": "SUNDAY"})).json()
    assert [h["clinic_id"] for h in found] == [clinic["id"]]

async def test_unknown_clinic_is_404(client):
    r = await client.get(f"{API}/clinics/999/doctors")
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"
    assert tenant_context.get() is None

async def test_inactive_clinic_is_unavailable(client):
    clinic = await register(client)
    await client.patch(f"{API}/directory/clinics/{clinic['id']}/activation", json={"is_active": False})
    r = await client.get(f"{API}/clinics/{clinic['id']}/doctors")
    assert r.status_code == 503
    assert r.json()["code"] == "tenant_unavailable"

async def test_credential_bound_to_another_clinic_is_forbidden(client):
    first = await register(client, 1)
    second = await register(client, 2)
    token = issue_token(5, clinic_id=second["id"], scopes=["doctors:read"])
    headers = {"Authorization": f"Bearer {token}"}

    assert (await client.get(f"{API}/clinics/{second['id']}/doctors", headers=headers)).status_code == 200
    r = await client.get(f"{API}/clinics/{first['id']}/doctors", headers=headers)
    assert r.status_code == 403

async def test_missing_scope_is_forbidden(client):
    clinic = await register(client)
    token = issue_token(5, clinic_id=clinic["id"], scopes=["doctors:read"])
    r = await client.post(f"{API}/clinics/{clinic['id']}/doctors", json={"name": "Dr. X"},
                          headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 403

async def test_clinic_bound_doctor_search_reads_the_clinic_database(client):
    first = await register(client, 1)
    second = await register(client, 2)
    await client.post(f"{API}/clinics/{first['id']}/doctors", json={"name": "Dr. Laila"})
    await client.post(f"{API}/clinics/{second['id']}/doctors", json={"name": "Dr. Layla"})

    token = issue_token(5, clinic_id=first["id"], scopes=["clinics:read"])
    r = await client.get(f"{API}/directory/doctors", params={"name": "la"}, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200, r.text
    assert [(d["clinic_id"], d["name"]) for d in r.json()] == [(first["id"], "Dr. Laila")]

    await directory_sync.drain()
    everyone = (await client.get(f"{API}/directory/doctors", params={"name": "la"})).json()
    assert {d["clinic_id"] for d in everyone} == {first["id"], second["id"]}
