"""
Admin panel API tests: access control, user management and reporting.
"""
import pytest
from fastapi.testclient import TestClient

from portal.models.models import User


def _submit(client: TestClient, user_id: int, module_id: int, score: int):
    response = client.post(
        "/api/evaluations",
        json={"userId": user_id, "moduleId": module_id, "score": score, "passed": score >= 90},
    )
    assert response.status_code == 200
    return response.json()


@pytest.mark.integration
class TestAdminAccess:
    def test_requires_login(self, api_client: TestClient):
        response = api_client.get("/api/admin/users")
        assert response.status_code == 401

    def test_collaborator_forbidden(self, api_client: TestClient, seed_user):
        seed_user(email="colab@example.com", password="pw")
        api_client.post("/api/auth/login", json={"email": "colab@example.com", "password": "pw"})
        response = api_client.get("/api/admin/all-evaluations")
        assert response.status_code == 403
        assert "administrators" in response.json()["message"]

    def test_invalid_cookie(self, api_client: TestClient):
        api_client.cookies.set("access_token", "garbage")
        assert api_client.get("/api/admin/users").status_code == 401


@pytest.mark.integration
class TestAdminUsers:
    def test_list_users(self, admin_client: TestClient, seed_user):
        seed_user(email="bruno@example.com", username="Bruno")
        users = admin_client.get("/api/admin/users").json()
        assert [u["username"] for u in users] == ["Admin", "Bruno"]
        assert users[0]["userProfile"] == "admin"
        assert users[1]["userMail"] == "bruno@example.com"

    def test_update_user(self, admin_client: TestClient, seed_user):
        user_id = seed_user(email="carla@example.com", username="Carla")
        response = admin_client.put(
            f"/api/admin/users/{user_id}",
            json={"username": "Carla M", "email": "carla.m@example.com", "profile": "admin"},
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["username"] == "Carla M"
        assert user["userProfile"] == "admin"

    def test_update_rejects_unknown_role(self, admin_client: TestClient, seed_user):
        user_id = seed_user(email="dora@example.com")
        response = admin_client.put(
            f"/api/admin/users/{user_id}",
            json={"username": "Dora", "email": "dora@example.com", "profile": "root"},
        )
        assert response.status_code == 400

    def test_update_missing_user(self, admin_client: TestClient):
        response = admin_client.put(
            "/api/admin/users/999",
            json={"username": "X", "email": "x@example.com", "profile": "collaborator"},
        )
        assert response.status_code == 404

    def test_delete_user(self, admin_client: TestClient, seed_user, db):
        user_id = seed_user(email="edu@example.com")
        _submit(admin_client, user_id, 1, 95)
        response = admin_client.delete(f"/api/admin/users/{user_id}")
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert db.get(User, user_id) is None
        assert admin_client.get(f"/api/evaluations/{user_id}").json() == []

    def test_cannot_delete_self(self, admin_client: TestClient):
        me = admin_client.get("/api/auth/me").json()
        response = admin_client.delete(f"/api/admin/users/{me['id']}")
        assert response.status_code == 400


@pytest.mark.integration
class TestAdminReports:
    def test_all_evaluations(self, admin_client: TestClient, seed_user):
        first = seed_user(email="f@example.com")
        second = seed_user(email="g@example.com")
        _submit(admin_client, first, 1, 95)
        _submit(admin_client, second, 1, 40)
        evaluations = admin_client.get("/api/admin/all-evaluations").json()
        assert {e["userId"] for e in evaluations} == {first, second}

    def test_user_evaluations(self, admin_client: TestClient, seed_user):
        user_id = seed_user(email="h@example.com")
        _submit(admin_client, user_id, 1, 95)
        _submit(admin_client, user_id, 2, 50)
        body = admin_client.get(f"/api/admin/user-evaluations/{user_id}").json()
        assert body["totalAttempts"] == 2
        assert body["currentModule"] == 2
        assert set(body["attemptsByModule"]) == {"module_1", "module_2"}
        assert body["userProgress"]["completedModules"] == [1]

    def test_module_stats(self, admin_client: TestClient, seed_user):
        user_id = seed_user(email="i@example.com")
        _submit(admin_client, user_id, 3, 80)
        _submit(admin_client, user_id, 3, 100)
        stats = admin_client.get("/api/admin/module-stats/3").json()
        assert stats["moduleNumber"] == 3
        assert stats["totalAttempts"] == 2
        assert stats["passedAttempts"] == 1
        assert stats["passRate"] == 50.0
        assert stats["bestScore"] == 100

    def test_module_stats_out_of_range(self, admin_client: TestClient):
        assert admin_client.get("/api/admin/module-stats/5").status_code == 400
