"""API tests for clinic lifecycle and capacity."""


class TestClinicStatusRoute:
    async def test_requires_transfer_decision(self, client, seed, add_appointment):
        await add_appointment()
        resp = await client.patch(
            f"/api/v1/clinics/{seed['clinic'].id}/status", json={"status": "inactive"}
        )
        assert resp.status_code == 409
        error = resp.json()["error"]
        assert error["code"] == "CLINIC_REQUIRES_TRANSFER"
        assert error["details"]["requiresTransfer"] is True
        assert error["details"]["activeAppointments"] == 1

    async def test_deactivate_with_transfer(self, client, seed, add_appointment):
        await add_appointment()
        resp = await client.patch(
            f"/api/v1/clinics/{seed['clinic'].id}/status",
            json={
                "status": "inactive",
                "reason": "Lease ended",
                "transferDoctors": True,
                "transferStaff": True,
                "targetClinicId": str(seed["other_clinic"].id),
            },
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["clinic"]["status"] == "inactive"
        assert data["clinic"]["isActive"] is False
        assert data["doctorsTransferred"] == 1
        assert data["staffTransferred"] == 1
        assert data["appointmentsAffected"] == 1

    async def test_unknown_status_value(self, client, seed):
        resp = await client.patch(
            f"/api/v1/clinics/{seed['clinic'].id}/status", json={"status": "closed"}
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_manager_cannot_change_status(self, client, seed, current_user):
        current_user.role = "manager"
        resp = await client.patch(
            f"/api/v1/clinics/{seed['clinic'].id}/status", json={"status": "active"}
        )
        assert resp.status_code == 403


class TestTransferRoute:
    async def test_transfer_staff_only(self, client, seed):
        resp = await client.post(
            f"/api/v1/clinics/{seed['clinic'].id}/transfer-staff",
            json={"targetClinicId": str(seed["other_clinic"].id), "transferDoctors": False},
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["doctorsTransferred"] == 0
        assert data["staffTransferred"] == 1

    async def test_invalid_target(self, client, seed):
        resp = await client.post(
            f"/api/v1/clinics/{seed['clinic'].id}/transfer-staff",
            json={"targetClinicId": str(seed["clinic"].id)},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_TARGET_CLINIC"


class TestCapacityRoute:
    async def test_capacity_snapshot(self, client, seed):
        resp = await client.get(f"/api/v1/clinics/{seed['clinic'].id}/capacity")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["clinicName"] == "Main Clinic"
        assert data["doctors"]["current"] == 1
        assert data["doctors"]["isExceeded"] is False
        assert data["doctors"]["personnel"][0]["email"] == "sara@example.com"
        assert data["patients"] == {
            "max": 10, "current": 0, "available": 10, "percentage": 0, "isExceeded": False,
        }

    async def test_transfer_refreshes_capacity(self, client, seed):
        path = f"/api/v1/clinics/{seed['clinic'].id}/capacity"
        assert (await client.get(path)).json()["data"]["staff"]["current"] == 1

        await client.post(
            f"/api/v1/clinics/{seed['clinic'].id}/transfer-staff",
            json={"targetClinicId": str(seed["other_clinic"].id), "transferDoctors": False},
        )
        assert (await client.get(path)).json()["data"]["staff"]["current"] == 0

    async def test_unknown_clinic(self, client, seed):
        resp = await client.get("/api/v1/clinics/00000000-0000-0000-0000-000000000000/capacity")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "CLINIC_NOT_FOUND"
