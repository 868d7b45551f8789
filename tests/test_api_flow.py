from __future__ import annotations

from dataclasses import replace

from fastapi.testclient import TestClient

from app import create_app
from backend.utils.config import get_settings


def _build_test_settings(tmp_path, admin_token=None, **overrides):
    get_settings.cache_clear()
    return replace(
        get_settings(),
        database_path=tmp_path / "api_flow.db",
        admin_token=admin_token,
        seed_demo_data=True,
        **overrides,
    )


def test_compatibility_and_assignment_flow(tmp_path):
    app = create_app(_build_test_settings(tmp_path))

    with TestClient(app) as client:
        health = client.get("/health")
        assert health.status_code == 200
        assert health.json()["mode"] == "enforced"

        ok = client.get("/beds/bed-204A/compatibility", params={"gender": "male"})
        assert ok.status_code == 200
        assert ok.json()["compatible"] is True
        assert ok.json()["shared_bathroom_rooms"] == ["202", "203"]

        blocked = client.get("/beds/bed-101B/compatibility", params={"gender": "female"})
        assert blocked.status_code == 200
        body = blocked.json()
        assert body["compatible"] is False
        assert body["reason_code"] == "same_room"
        assert body["conflicting_gender"] == "male"
        assert "Room 101" in body["reason"]

        required = client.get("/beds/bed-103A/required_gender")
        assert required.status_code == 200
        assert required.json()["state"] == "locked"
        assert required.json()["required_gender"] == "female"

        listing = client.get("/beds/compatible", params={"gender": "female"})
        assert listing.status_code == 200
        female_beds = {bed["bed_id"] for bed in listing.json()["beds"]}
        assert "bed-102B" in female_beds
        assert "bed-101B" not in female_beds

        before = client.get("/analytics/gender_availability").json()
        assert before["male_available"] == before["male_only"] + before["either_available"]
        assert before["total_vacant"] == 10

        assigned = client.post("/assignments", json={"resident_id": "res-5", "bed_id": "bed-204A"})
        assert assigned.status_code == 201
        assert assigned.json()["status"] == "ASSIGNED"

        rejected = client.post("/assignments", json={"resident_id": "res-6", "bed_id": "bed-202A"})
        assert rejected.status_code == 409
        detail = rejected.json()["detail"]
        assert detail["code"] == "gender_incompatible"
        assert detail["reason_code"] == "shared_bathroom"
        assert detail["conflicting_rooms"] == ["204"]

        conflict = client.post("/assignments", json={"resident_id": "res-6", "bed_id": "bed-204A"})
        assert conflict.status_code == 409
        assert conflict.json()["detail"]["code"] == "assignment_conflict"

        after = client.get("/analytics/gender_availability").json()
        assert after["total_vacant"] == 9
        assert after["male_only"] == before["male_only"] + 3
        assert after["either_available"] == before["either_available"] - 4

        released = client.delete("/assignments/res-5", params={"discharge": "true"})
        assert released.status_code == 200
        assert released.json() == {
            "status": "DISCHARGED",
            "resident_id": "res-5",
            "released_bed_id": "bed-204A",
        }


def test_unknown_ids_return_not_found(tmp_path):
    app = create_app(_build_test_settings(tmp_path))

    with TestClient(app) as client:
        missing_bed = client.get("/beds/nope/compatibility", params={"gender": "male"})
        assert missing_bed.status_code == 404
        assert missing_bed.json()["detail"]["code"] == "not_found"

        missing_resident = client.post(
            "/assignments", json={"resident_id": "ghost", "bed_id": "bed-105A"}
        )
        assert missing_resident.status_code == 404

        bad_gender = client.get("/beds/bed-105A/compatibility", params={"gender": "unknown"})
        assert bad_gender.status_code == 422


def test_analytics_by_wing_and_recommendations(tmp_path):
    app = create_app(_build_test_settings(tmp_path))

    with TestClient(app) as client:
        wings = client.get("/analytics/gender_availability/by_wing").json()["wings"]
        assert set(wings) == {"wing-north", "wing-south"}
        assert wings["wing-south"]["either_available"] == 4
        assert sum(wing["total_vacant"] for wing in wings.values()) == 10

        recommendations = client.get("/analytics/move_recommendations").json()["recommendations"]
        assert recommendations[0]["resident_id"] == "res-4"
        assert recommendations[0]["impact"] == 2


def test_admin_token_protects_endpoints(tmp_path):
    app = create_app(_build_test_settings(tmp_path, admin_token="secret-admin-token"))

    with TestClient(app) as client:
        unauthorized = client.get("/analytics/gender_availability")
        assert unauthorized.status_code == 401

        bad_login = client.post("/login", json={"admin_token": "wrong"})
        assert bad_login.status_code == 401

        login = client.post("/login", json={"admin_token": "secret-admin-token"})
        assert login.status_code == 200
        token = login.json()["access_token"]

        authorized = client.get(
            "/analytics/gender_availability",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert authorized.status_code == 200

        forged = client.get(
            "/analytics/gender_availability",
            headers={"Authorization": "Bearer not-a-session"},
        )
        assert forged.status_code == 401


def test_degraded_mode_fails_open(tmp_path):
    settings = replace(_build_test_settings(tmp_path), database_path=None)
    app = create_app(settings)

    with TestClient(app) as client:
        assert client.get("/health").json()["mode"] == "degraded"

        result = client.get("/beds/anything/compatibility", params={"gender": "female"})
        assert result.status_code == 200
        assert result.json()["compatible"] is True
        assert result.json()["mode"] == "degraded"

        counts = client.get("/analytics/gender_availability").json()
        assert counts["total_vacant"] == 0
        assert counts["mode"] == "degraded"

        assignment = client.post(
            "/assignments", json={"resident_id": "res-1", "bed_id": "bed-101B"}
        )
        assert assignment.status_code == 503
        assert assignment.json()["detail"]["code"] == "snapshot_source_not_configured"


def test_unconfigured_source_fails_closed_when_disabled(tmp_path):
    settings = replace(
        _build_test_settings(tmp_path),
        database_path=None,
        fail_open_when_unconfigured=False,
    )
    app = create_app(settings)

    with TestClient(app) as client:
        result = client.get("/beds/anything/compatibility", params={"gender": "female"})
        assert result.status_code == 503
        assert result.json()["detail"]["code"] == "snapshot_source_not_configured"
