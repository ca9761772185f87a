"""HTTP tests for login, token rotation, logout, users and the activity log."""

import logging


async def login(client, username, password="secret123"):
    return await client.post("/auth/login", json={"username": username, "password": password})


class TestAuth:
    async def test_login_returns_tokens(self, client, admin):
        resp = await login(client, "admin")
        assert resp.status_code == 200
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["access_token"]
        assert body["refresh_token"]

    async def test_wrong_password(self, client, admin):
        resp = await login(client, "admin", "nope")
        assert resp.status_code == 401

    async def test_logout_invalidates_access_token(self, client, admin):
        token = (await login(client, "admin")).json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        assert (await client.get("/users/", headers=headers)).status_code == 200
        resp = await client.post("/auth/logout", headers=headers)
        assert resp.status_code == 200

        resp = await client.get("/users/", headers=headers)
        assert resp.status_code == 401

    async def test_refresh_rotates_and_rejects_reuse(self, client, stock_clerk):
        refresh_token = (await login(client, "clerk")).json()["refresh_token"]

        resp = await client.post("/auth/refresh", json={"refresh_token": refresh_token})
        assert resp.status_code == 200
        new_access = resp.json()["access_token"]

        resp = await client.get("/inventory/stock", headers={"Authorization": f"Bearer {new_access}"})
        assert resp.status_code == 200

        resp = await client.post("/auth/refresh", json={"refresh_token": refresh_token})
        assert resp.status_code == 401

    async def test_token_header_is_accepted(self, client, stock_clerk):
        token = (await login(client, "clerk")).json()["access_token"]
        resp = await client.get("/inventory/stock", headers={"token": token})
        assert resp.status_code == 200


class TestUsers:
    async def test_admin_creates_and_deactivates_users(self, client, admin_headers):
        resp = await client.post(
            "/users/", json={"username": "dana", "password": "longenough", "role": "inventory"}, headers=admin_headers
        )
        assert resp.status_code == 201
        user_id = resp.json()["data"]["id"]

        resp = await client.delete(f"/users/{user_id}", headers=admin_headers)
        assert resp.status_code == 200

        resp = await login(client, "dana", "longenough")
        assert resp.status_code == 403

    async def test_unknown_role_is_rejected(self, client, admin_headers):
        resp = await client.post(
            "/users/", json={"username": "eve", "password": "longenough", "role": "cashier"}, headers=admin_headers
        )
        assert resp.status_code == 400

    async def test_short_password_is_rejected(self, client, admin_headers):
        resp = await client.post(
            "/users/", json={"username": "eve", "password": "abc", "role": "customer"}, headers=admin_headers
        )
        assert resp.status_code == 400

    async def test_non_admin_cannot_list_users(self, client, clerk_headers):
        resp = await client.get("/users/", headers=clerk_headers)
        assert resp.status_code == 403


class TestActivities:
    async def test_each_admin_action_is_recorded_once(self, client, admin_headers):
        await client.post("/inventory/categories", json={"name": "Cakes"}, headers=admin_headers)

        resp = await client.get("/activities/", params={"username": "admin"}, headers=admin_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 1
        assert body["pages"] == 1
        [activity] = body["data"]
        assert activity["message"].startswith("Admin created category 'Cakes'")

    async def test_rejected_action_returns_its_error_and_records_nothing(self, client, admin_headers):
        await client.post("/inventory/categories", json={"name": "Cakes"}, headers=admin_headers)

        resp = await client.post("/inventory/categories", json={"name": "cakes"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Category 'cakes' already exists"

        resp = await client.post(
            "/users/", json={"username": "eve", "password": "longenough", "role": "cashier"}, headers=admin_headers
        )
        assert resp.status_code == 400

        resp = await client.get("/activities/", headers=admin_headers)
        assert resp.json()["total"] == 1

    async def test_search_and_time_window(self, client, admin_headers):
        await client.post("/inventory/categories", json={"name": "Cakes"}, headers=admin_headers)
        await client.post("/inventory/categories", json={"name": "Pies"}, headers=admin_headers)

        resp = await client.get("/activities/", params={"search": "'pies'"}, headers=admin_headers)
        assert [a["message"] for a in resp.json()["data"]][0].startswith("Admin created category 'Pies'")
        assert resp.json()["total"] == 1

        resp = await client.get("/activities/", params={"since": "2999-01-01T00:00:00"}, headers=admin_headers)
        assert resp.json()["total"] == 0

        resp = await client.get(
            "/activities/",
            params={"since": "2030-01-02T00:00:00", "until": "2030-01-01T00:00:00"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    async def test_only_admins_read_the_trail(self, client, clerk_headers):
        resp = await client.get("/activities/", headers=clerk_headers)
        assert resp.status_code == 403

    async def test_mutations_are_written_to_the_request_log(self, client, admin, admin_headers, caplog):
        with caplog.at_level(logging.INFO, logger="app.middleware.activity_logger"):
            await client.post("/inventory/categories", json={"name": "Cakes"}, headers=admin_headers)
            await client.post("/inventory/categories", json={"name": "Cakes"}, headers=admin_headers)
            await client.get("/inventory/categories", headers=admin_headers)

        records = [r for r in caplog.records if r.name == "app.middleware.activity_logger"]
        assert [r.getMessage() for r in records] == [
            f"admin (ID: {admin.id}) POST /inventory/categories -> 201",
            f"admin (ID: {admin.id}) POST /inventory/categories -> 400",
        ]
        assert [r.levelno for r in records] == [logging.INFO, logging.WARNING]
