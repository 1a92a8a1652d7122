"""
Test cases for the /apps endpoints.
"""
import pytest


@pytest.mark.asyncio
async def test_app_routes_require_token(client, tenant):
    for method, path in [
        ("GET", "/apps"),
        ("POST", "/apps"),
        ("GET", f"/apps/{tenant}"),
        ("PUT", f"/apps/{tenant}"),
        ("DELETE", f"/apps/{tenant}"),
    ]:
        resp = await client.request(method, path)
        assert resp.status_code == 401, (method, path)


@pytest.mark.asyncio
async def test_app_crud(client, auth_headers):
    resp = await client.post("/apps", json={"name": "billing"}, headers=auth_headers)
    assert resp.status_code == 201
    created = resp.json()["data"]
    assert created["name"] == "billing"
    assert created["status"] == 1

    resp = await client.get("/apps", headers=auth_headers)
    assert [a["name"] for a in resp.json()["data"]] == ["dvarapala", "billing"]

    resp = await client.put(f"/apps/{created['id']}", json={"status": 0}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == 0
    assert resp.json()["data"]["name"] == "billing"

    resp = await client.get(f"/apps/{created['id']}", headers=auth_headers)
    assert resp.json()["data"]["status"] == 0

    resp = await client.delete(f"/apps/{created['id']}", headers=auth_headers)
    assert resp.status_code == 204
    resp = await client.get(f"/apps/{created['id']}", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json() == {"detail": "App not found"}


@pytest.mark.asyncio
async def test_app_name_is_unique(client, auth_headers):
    resp = await client.post("/apps", json={"name": "dvarapala"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json() == {"detail": "App name already registered"}

    resp = await client.post("/apps", json={"name": "reports"}, headers=auth_headers)
    resp = await client.put(f"/apps/{resp.json()['data']['id']}", json={"name": "dvarapala"}, headers=auth_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_missing_app(client, auth_headers):
    assert (await client.get("/apps/999", headers=auth_headers)).status_code == 404
    assert (await client.put("/apps/999", json={"name": "x"}, headers=auth_headers)).status_code == 404
    assert (await client.delete("/apps/999", headers=auth_headers)).status_code == 404


@pytest.mark.asyncio
async def test_deleting_app_removes_its_users(client, user, auth_headers):
    resp = await client.post("/apps", json={"name": "doomed"}, headers=auth_headers)
    doomed_id = resp.json()["data"]["id"]
    resp = await client.post("/users", json={
        "app_id": doomed_id,
        "firstname": "Short",
        "lastname": "Lived",
        "email": "short-lived@example.com",
        "password": "temporary-password",
    }, headers=auth_headers)
    doomed_user_id = resp.json()["data"]["id"]

    resp = await client.delete(f"/apps/{doomed_id}", headers=auth_headers)
    assert resp.status_code == 204

    resp = await client.get(f"/users/{doomed_user_id}", headers=auth_headers)
    assert resp.status_code == 404
    # Users of other apps are untouched
    resp = await client.get(f"/users/{user['id']}", headers=auth_headers)
    assert resp.status_code == 200
