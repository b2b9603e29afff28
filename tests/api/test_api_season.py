"""HTTP surface: season controller and admin data endpoints."""

from __future__ import annotations

import pytest

pytestmark = pytest.mark.asyncio


class TestSeasonApi:
    async def test_get_season(self, client):
        data = (await client.get("/api/v1/season")).json()
        assert data["phase"] == "active"

    async def test_finish_report_reset(self, client, admin, alice, auth_headers):
        await client.post(
            "/api/v1/problems",
            json={"title": "Т", "description": "Д", "category": "other"},
            headers=auth_headers(alice),
        )
        assert (await client.get("/api/v1/season/report")).status_code == 204

        finished = await client.post("/api/v1/season/finish", headers=auth_headers(admin))
        assert finished.status_code == 200
        assert finished.json()["winners"][0]["user_id"] == "user-a"

        report = await client.get("/api/v1/season/report")
        assert report.status_code == 200
        assert report.json()["is_finished"] is True

        activate = await client.post("/api/v1/season/activate", headers=auth_headers(admin))
        assert activate.status_code == 400

        reset = await client.post("/api/v1/season/reset", headers=auth_headers(admin))
        assert reset.json()["phase"] == "active"
        assert (await client.get("/api/v1/leaderboard")).json()["entries"] == []

    async def test_configure(self, client, admin, auth_headers):
        response = await client.put(
            "/api/v1/season",
            json={
                "name": "Весна",
                "start_date": "2026-03-01T00:00:00Z",
                "end_date": "2026-05-31T00:00:00Z",
                "is_active": False,
            },
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["phase"] == "inactive"

    async def test_user_cannot_finish(self, client, alice, auth_headers):
        response = await client.post("/api/v1/season/finish", headers=auth_headers(alice))
        assert response.status_code == 403


class TestAdminDataApi:
    async def test_export_import_round_trip(self, client, admin, alice, auth_headers):
        await client.post(
            "/api/v1/problems",
            json={"title": "Т", "description": "Д", "category": "other"},
            headers=auth_headers(alice),
        )
        backup = (await client.get("/api/v1/admin/export", headers=auth_headers(admin))).json()
        assert backup["version"] == "1.0"
        assert len(backup["problems"]) == 1

        await client.post("/api/v1/season/reset", headers=auth_headers(admin))
        restored = await client.post("/api/v1/admin/import", json=backup, headers=auth_headers(admin))
        assert restored.status_code == 204

        problems = (await client.get("/api/v1/problems", headers=auth_headers(alice))).json()
        assert problems["total"] == 1

    async def test_import_rejects_bad_shape(self, client, admin, auth_headers):
        response = await client.post("/api/v1/admin/import", json={"users": []}, headers=auth_headers(admin))
        assert response.status_code == 400

    async def test_mirror_status_and_replay(self, client, admin, alice, auth_headers):
        await client.post("/api/v1/users/me", headers=auth_headers(alice))
        status = (await client.get("/api/v1/admin/mirror", headers=auth_headers(admin))).json()
        assert status["enabled"] is False
        assert status["pending"] >= 1

        replay = (await client.post("/api/v1/admin/mirror/replay", headers=auth_headers(admin))).json()
        assert replay["delivered"] == 0
