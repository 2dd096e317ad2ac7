from datetime import timedelta

from pizzeria.core.security import create_access_token
from pizzeria.models import Role

from tests.conftest import PASSWORD


def register_payload(email="maria@pizzeria.com", role="counter_staff"):
    return {"name": "Maria Santos", "email": email, "password": "s3cret!", "role": role}


class TestRegister:
    def test_first_account_can_register_without_token(self, client):
        response = client.post("/auth/register", json=register_payload(role="admin"))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["account"]["email"] == "maria@pizzeria.com"
        assert body["account"]["role"] == "admin"
        assert "password_hash" not in body["account"]

    def test_later_registrations_need_a_token(self, client, seed):
        seed.account(Role.ADMIN)

        response = client.post("/auth/register", json=register_payload())

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_later_registrations_need_manage_users(self, client, seed):
        counter = seed.account(Role.COUNTER_STAFF)

        response = client.post("/auth/register", json=register_payload(), headers=seed.headers(counter))

        assert response.status_code == 403

    def test_manager_registers_staff_with_lowercased_email(self, client, seed):
        manager = seed.account(Role.MANAGER)

        response = client.post(
            "/auth/register",
            json=register_payload(email="New.Cook@Pizzeria.com", role="cook"),
            headers=seed.headers(manager),
        )

        assert response.status_code == 201
        assert response.json()["account"]["email"] == "new.cook@pizzeria.com"

    def test_duplicate_email_is_a_conflict(self, client, seed):
        admin = seed.account(Role.ADMIN, email="maria@pizzeria.com")

        response = client.post("/auth/register", json=register_payload(), headers=seed.headers(admin))

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Email already registered"}

    def test_invalid_payload_uses_failure_envelope(self, client):
        response = client.post("/auth/register", json={"name": "X", "email": "nope", "password": "1", "role": "chef"})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["message"]


class TestLogin:
    def test_login_returns_token_and_stamps_last_login(self, client, seed):
        account = seed.account(Role.COOK, email="cook@pizzeria.com")

        response = client.post("/auth/login", json={"email": "COOK@pizzeria.com", "password": PASSWORD})

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["account"]["id"] == account.id
        assert body["account"]["last_login_at"] is not None

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.json()["account"]["email"] == "cook@pizzeria.com"

    def test_wrong_password_is_unauthorized(self, client, seed):
        seed.account(Role.COOK, email="cook@pizzeria.com")

        response = client.post("/auth/login", json={"email": "cook@pizzeria.com", "password": "wrong"})

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid credentials"}

    def test_unknown_account_is_unauthorized(self, client):
        response = client.post("/auth/login", json={"email": "ghost@pizzeria.com", "password": PASSWORD})
        assert response.status_code == 401

    def test_deactivated_account_cannot_login_or_use_token(self, client, seed):
        admin = seed.account(Role.ADMIN)
        driver = seed.account(Role.DRIVER, email="driver@pizzeria.com")

        assert client.delete(f"/auth/users/{driver.id}", headers=seed.headers(admin)).status_code == 200

        login = client.post("/auth/login", json={"email": "driver@pizzeria.com", "password": PASSWORD})
        assert login.status_code == 401
        assert client.get("/auth/me", headers=seed.headers(driver)).status_code == 401


class TestTokens:
    def test_missing_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code == 401
        assert response.json()["message"] == "Access token required"

    def test_garbage_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    def test_expired_token(self, client, seed):
        account = seed.account(Role.ADMIN)
        token = create_access_token(account.id, account.email, "admin", expires_delta=timedelta(seconds=-5))

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["message"] == "Token expired"


class TestSelfService:
    def test_change_password(self, client, seed):
        account = seed.account(Role.COUNTER_STAFF, email="maria@pizzeria.com")
        headers = seed.headers(account)

        wrong = client.put("/auth/password", json={"current_password": "nope", "new_password": "another1"}, headers=headers)
        assert wrong.status_code == 401

        ok = client.put("/auth/password", json={"current_password": PASSWORD, "new_password": "another1"}, headers=headers)
        assert ok.status_code == 200
        assert ok.json()["success"] is True

        login = client.post("/auth/login", json={"email": "maria@pizzeria.com", "password": "another1"})
        assert login.status_code == 200

    def test_update_preferences(self, client, seed):
        cook = seed.account(Role.COOK)

        response = client.put(
            "/auth/preferences",
            json={"sound_notifications": False, "preferred_view": "preparation"},
            headers=seed.headers(cook),
        )

        assert response.status_code == 200
        assert response.json()["account"]["preferences"] == {
            "sound_notifications": False,
            "preferred_view": "preparation",
        }


class TestUserAdministration:
    def test_list_and_update_users(self, client, seed):
        admin = seed.account(Role.ADMIN)
        cook = seed.account(Role.COOK)
        headers = seed.headers(admin)

        listing = client.get("/auth/users", headers=headers)
        assert listing.status_code == 200
        assert {a["id"] for a in listing.json()["accounts"]} == {admin.id, cook.id}

        updated = client.put(f"/auth/users/{cook.id}", json={"role": "driver"}, headers=headers)
        assert updated.json()["account"]["role"] == "driver"

    def test_cook_cannot_list_users(self, client, seed):
        cook = seed.account(Role.COOK)
        assert client.get("/auth/users", headers=seed.headers(cook)).status_code == 403

    def test_unknown_user(self, client, seed):
        admin = seed.account(Role.ADMIN)
        response = client.delete("/auth/users/999", headers=seed.headers(admin))
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "User not found"}
