import pytest

import crud


@pytest.fixture
def budget(client, alice):
    response = client.post(
        "/api/budgets",
        json={"name": "Food", "category": "Food & Dining", "amount": 400, "period": "monthly", "startDate": "2026-10-01"},
        headers=alice["headers"],
    )
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def goal(client, alice):
    response = client.post(
        "/api/goals",
        json={"name": "Emergency fund", "targetAmount": 1000, "currentAmount": 100},
        headers=alice["headers"],
    )
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def notification(app, alice):
    with app.state.session_factory() as db:
        created = crud.create_notification(db, alice["id"], "Hello", "Welcome aboard", "info")
        return created.id


class TestBudgets:
    def test_create_and_list(self, client, alice, budget):
        assert budget["isActive"] is True
        assert budget["period"] == "monthly"
        listed = client.get("/api/budgets", headers=alice["headers"]).json()
        assert [b["id"] for b in listed] == [budget["id"]]

    def test_active_filter(self, client, alice, budget):
        client.patch(f"/api/budgets/{budget['id']}", json={"isActive": False}, headers=alice["headers"])
        assert client.get("/api/budgets", params={"active": "true"}, headers=alice["headers"]).json() == []
        inactive = client.get("/api/budgets", params={"active": "false"}, headers=alice["headers"]).json()
        assert [b["id"] for b in inactive] == [budget["id"]]

    def test_rejects_non_positive_amount(self, client, alice):
        response = client.post("/api/budgets", json={"name": "x", "amount": 0}, headers=alice["headers"])
        assert response.status_code == 400

    def test_cross_tenant_access_is_not_found(self, client, alice, bob, budget):
        assert client.get(f"/api/budgets/{budget['id']}", headers=bob["headers"]).status_code == 404
        patch = client.patch(f"/api/budgets/{budget['id']}", json={"amount": 1}, headers=bob["headers"])
        assert patch.status_code == 404
        assert client.delete(f"/api/budgets/{budget['id']}", headers=bob["headers"]).status_code == 404
        assert client.get("/api/budgets", headers=bob["headers"]).json() == []
        assert client.get(f"/api/budgets/{budget['id']}", headers=alice["headers"]).json()["amount"] == 400

    def test_delete(self, client, alice, budget):
        assert client.delete(f"/api/budgets/{budget['id']}", headers=alice["headers"]).status_code == 200
        assert client.get("/api/budgets", headers=alice["headers"]).json() == []


class TestGoals:
    def test_create_defaults(self, goal):
        assert goal["isCompleted"] is False
        assert goal["currentAmount"] == 100

    def test_reaching_target_completes_goal(self, client, alice, goal):
        response = client.patch(
            f"/api/goals/{goal['id']}", json={"currentAmount": 1000}, headers=alice["headers"]
        )
        assert response.status_code == 200
        assert response.json()["isCompleted"] is True

    def test_partial_progress_keeps_goal_open(self, client, alice, goal):
        response = client.patch(f"/api/goals/{goal['id']}", json={"currentAmount": 500}, headers=alice["headers"])
        assert response.json()["isCompleted"] is False

    def test_cross_tenant_update_leaves_goal_unchanged(self, client, alice, bob, goal):
        response = client.patch(f"/api/goals/{goal['id']}", json={"currentAmount": 1000}, headers=bob["headers"])
        assert response.status_code == 404
        refetched = client.get(f"/api/goals/{goal['id']}", headers=alice["headers"]).json()
        assert refetched["currentAmount"] == 100
        assert refetched["isCompleted"] is False

    def test_delete(self, client, alice, goal):
        assert client.delete(f"/api/goals/{goal['id']}", headers=alice["headers"]).status_code == 200
        assert client.get("/api/goals", headers=alice["headers"]).json() == []


class TestCategories:
    def test_create_custom_category(self, client, alice):
        response = client.post(
            "/api/categories", json={"name": "Pets", "icon": "paw", "color": "#123456"}, headers=alice["headers"]
        )
        assert response.status_code == 200
        assert response.json()["isDefault"] is False

    def test_cannot_create_default_category(self, client, alice):
        response = client.post("/api/categories", json={"name": "Pets", "isDefault": True}, headers=alice["headers"])
        assert response.json()["isDefault"] is False

    def test_rename_and_delete(self, client, alice):
        created = client.post("/api/categories", json={"name": "Pets"}, headers=alice["headers"]).json()
        renamed = client.patch(f"/api/categories/{created['id']}", json={"name": "Animals"}, headers=alice["headers"])
        assert renamed.json()["name"] == "Animals"
        assert client.delete(f"/api/categories/{created['id']}", headers=alice["headers"]).status_code == 200

    def test_users_see_only_their_categories(self, client, alice, bob):
        client.post("/api/categories", json={"name": "Pets"}, headers=alice["headers"])
        bob_names = {c["name"] for c in client.get("/api/categories", headers=bob["headers"]).json()}
        assert "Pets" not in bob_names
        assert all(c["userId"] == bob["id"] for c in client.get("/api/categories", headers=bob["headers"]).json())

    def test_empty_update_returns_category_unchanged(self, client, alice, bob):
        created = client.post("/api/categories", json={"name": "Pets"}, headers=alice["headers"]).json()
        own = client.patch(f"/api/categories/{created['id']}", json={}, headers=alice["headers"])
        assert own.status_code == 200
        assert own.json()["name"] == "Pets"
        nulled = client.patch(f"/api/categories/{created['id']}", json={"name": None}, headers=alice["headers"])
        assert nulled.status_code == 200
        assert nulled.json()["name"] == "Pets"
        other = client.patch(f"/api/categories/{created['id']}", json={}, headers=bob["headers"])
        assert other.status_code == 404

    def test_cross_tenant_update_and_delete_are_not_found(self, client, alice, bob):
        created = client.post("/api/categories", json={"name": "Pets"}, headers=alice["headers"]).json()
        patch = client.patch(f"/api/categories/{created['id']}", json={"name": "Mine"}, headers=bob["headers"])
        assert patch.status_code == 404
        assert client.delete(f"/api/categories/{created['id']}", headers=bob["headers"]).status_code == 404
        bob_names = {c["name"] for c in client.get("/api/categories", headers=bob["headers"]).json()}
        assert "Mine" not in bob_names
        alice_names = {c["name"] for c in client.get("/api/categories", headers=alice["headers"]).json()}
        assert "Pets" in alice_names
        assert "Mine" not in alice_names


class TestNotifications:
    def test_list_and_mark_read(self, client, alice, notification):
        listed = client.get("/api/notifications", headers=alice["headers"]).json()
        assert [n["id"] for n in listed] == [notification]
        assert listed[0]["isRead"] is False

        response = client.patch(f"/api/notifications/{notification}/read", headers=alice["headers"])
        assert response.status_code == 200
        assert response.json()["isRead"] is True
        assert client.get("/api/notifications", params={"unread": "true"}, headers=alice["headers"]).json() == []

    def test_other_user_cannot_mark_read_or_delete(self, client, alice, bob, notification):
        assert client.patch(f"/api/notifications/{notification}/read", headers=bob["headers"]).status_code == 404
        assert client.delete(f"/api/notifications/{notification}", headers=bob["headers"]).status_code == 404
        listed = client.get("/api/notifications", headers=alice["headers"]).json()
        assert listed[0]["isRead"] is False

    def test_delete(self, client, alice, notification):
        assert client.delete(f"/api/notifications/{notification}", headers=alice["headers"]).status_code == 200
        assert client.get("/api/notifications", headers=alice["headers"]).json() == []
