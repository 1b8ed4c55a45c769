"""
tests.test_api

End-to-end HTTP flows through the FastAPI app (in-process, real temp database).
"""

from __future__ import annotations

import httpx
import pytest

from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD, bearer


async def _caretaker_code(client: httpx.AsyncClient, token: str) -> str:
    r = await client.get("/v1/caretaker/profile", headers=bearer(token))
    assert r.status_code == 200, r.text
    return r.json()["profile"]["caretaker_code"]


async def _connect(client: httpx.AsyncClient, nri: str, caretaker: str) -> None:
    code = await _caretaker_code(client, caretaker)
    r = await client.post("/v1/nri/caretakers/connect", json={"code": code}, headers=bearer(nri))
    assert r.status_code == 201, r.text


@pytest.mark.asyncio
async def test_register_returns_token_and_landing(client: httpx.AsyncClient) -> None:
    r = await client.post(
        "/v1/auth/register",
        json={
            "email": "nri@example.com",
            "password": "secret-pass",
            "confirm_password": "secret-pass",
            "role": "nri",
        },
    )
    assert r.status_code == 201
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["session"]["role"] == "nri"
    assert body["landing"] == {"intent": "redirect-dashboard", "redirect_to": "/nri/dashboard"}

    r = await client.get("/v1/session", headers=bearer(body["access_token"]))
    assert r.json()["authenticated"] is True
    assert r.json()["status"] == "active"


@pytest.mark.asyncio
async def test_registration_errors_are_human_readable(client: httpx.AsyncClient, register) -> None:
    await register("taken@example.com", "nri")

    r = await client.post(
        "/v1/auth/register",
        json={
            "email": "taken@example.com",
            "password": "secret-pass",
            "confirm_password": "secret-pass",
            "role": "caretaker",
        },
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "An account with this email already exists."

    r = await client.post(
        "/v1/auth/register",
        json={
            "email": "new@example.com",
            "password": "secret-pass",
            "confirm_password": "different",
            "role": "nri",
        },
    )
    assert r.status_code == 422
    assert r.json()["detail"] == "Passwords do not match."


@pytest.mark.asyncio
async def test_bad_credentials_are_401(client: httpx.AsyncClient, register) -> None:
    await register("nri@example.com", "nri")
    r = await client.post("/v1/auth/login", json={"email": "nri@example.com", "password": "nope"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid email or password."


@pytest.mark.asyncio
async def test_guard_redirects(client: httpx.AsyncClient, register) -> None:
    r = await client.get("/v1/caretaker/dashboard")
    assert r.status_code == 401
    assert r.json()["redirect_to"] == "/login"

    nri_token = await register("nri@example.com", "nri")
    r = await client.get("/v1/caretaker/dashboard", headers=bearer(nri_token))
    assert r.status_code == 403
    assert r.json()["intent"] == "redirect-dashboard"
    assert r.json()["redirect_to"] == "/nri/dashboard"

    r = await client.get(
        "/v1/session/guard", params={"required_role": "admin"}, headers=bearer(nri_token)
    )
    assert r.json() == {"intent": "redirect-dashboard", "redirect_to": "/nri/dashboard"}

    r = await client.get("/v1/nri/dashboard", headers=bearer(nri_token))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_logout_invalidates_token(client: httpx.AsyncClient, register) -> None:
    token = await register("nri@example.com", "nri")
    r = await client.post("/v1/auth/logout", headers=bearer(token))
    assert r.status_code == 204

    r = await client.get("/v1/nri/dashboard", headers=bearer(token))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_full_request_lifecycle(client: httpx.AsyncClient, register) -> None:
    caretaker = await register("ct@example.com", "caretaker")
    nri = await register("nri@example.com", "nri")

    r = await client.post(
        "/v1/caretaker/services",
        json={"name": "Hospital visit", "description": "Accompany to appointments", "price": 40},
        headers=bearer(caretaker),
    )
    assert r.status_code == 201
    service_id = r.json()["id"]

    code = await _caretaker_code(client, caretaker)
    r = await client.post(
        "/v1/nri/caretakers/connect", json={"code": code.lower()}, headers=bearer(nri)
    )
    assert r.status_code == 201
    r = await client.post("/v1/nri/caretakers/connect", json={"code": code}, headers=bearer(nri))
    assert r.status_code == 409

    caretaker_id = (await client.get("/v1/session", headers=bearer(caretaker))).json()["subject"]
    r = await client.get(f"/v1/nri/caretakers/{caretaker_id}/services", headers=bearer(nri))
    assert [s["id"] for s in r.json()] == [service_id]

    r = await client.post(
        "/v1/nri/requests",
        json={"service_id": service_id, "message": "Tuesday 10am"},
        headers=bearer(nri),
    )
    assert r.status_code == 201
    req = r.json()
    assert req["status"] == "pending"
    assert req["completed_at"] is None

    # Reviewing before completion is a validation error.
    r = await client.post(
        f"/v1/nri/requests/{req['id']}/review", json={"rating": 4}, headers=bearer(nri)
    )
    assert r.status_code == 422

    r = await client.post(
        f"/v1/caretaker/requests/{req['id']}/status",
        json={"status": "completed", "remarks": "All good"},
        headers=bearer(caretaker),
    )
    assert r.status_code == 200
    assert r.json()["status"] == "completed"
    assert r.json()["completed_at"] is not None
    assert r.json()["reviewed"] is False

    r = await client.get("/v1/nri/reviews/pending", headers=bearer(nri))
    assert [p["id"] for p in r.json()] == [req["id"]]

    r = await client.post(
        f"/v1/nri/requests/{req['id']}/review",
        json={"rating": 6},
        headers=bearer(nri),
    )
    assert r.status_code == 422

    r = await client.post(
        f"/v1/nri/requests/{req['id']}/review",
        json={"rating": 4, "comment": "Very kind"},
        headers=bearer(nri),
    )
    assert r.status_code == 201
    assert r.json()["rating"] == 4

    r = await client.post(
        f"/v1/nri/requests/{req['id']}/review", json={"rating": 5}, headers=bearer(nri)
    )
    assert r.status_code == 409

    r = await client.get("/v1/nri/requests", headers=bearer(nri))
    assert r.json()[0]["reviewed"] is True

    r = await client.get("/v1/caretaker/profile", headers=bearer(caretaker))
    assert r.json()["average_rating"] == 4.0
    assert len(r.json()["reviews"]) == 1

    r = await client.get("/v1/caretaker/dashboard", headers=bearer(caretaker))
    board = r.json()
    assert board["active_services"] == 1
    assert board["pending_requests"] == 0
    assert board["connected_nris"] == 1
    assert len(board["recent_requests"]) == 1


@pytest.mark.asyncio
async def test_other_caretakers_request_is_not_found(client: httpx.AsyncClient, register) -> None:
    owner = await register("owner@example.com", "caretaker")
    intruder = await register("intruder@example.com", "caretaker")
    nri = await register("nri@example.com", "nri")

    r = await client.post(
        "/v1/caretaker/services", json={"name": "Bill payments"}, headers=bearer(owner)
    )
    service_id = r.json()["id"]

    # Not connected to the owner yet: the service is invisible to the NRI.
    r = await client.post("/v1/nri/requests", json={"service_id": service_id}, headers=bearer(nri))
    assert r.status_code == 404

    await _connect(client, nri, owner)
    r = await client.post("/v1/nri/requests", json={"service_id": service_id}, headers=bearer(nri))
    request_id = r.json()["id"]

    r = await client.post(
        f"/v1/caretaker/requests/{request_id}/status",
        json={"status": "in-progress"},
        headers=bearer(intruder),
    )
    assert r.status_code == 404

    r = await client.post(
        f"/v1/caretaker/services/{service_id}/toggle", headers=bearer(intruder)
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_admin_block_evicts_caretaker_session(
    client: httpx.AsyncClient, register, login
) -> None:
    caretaker = await register("ct@example.com", "caretaker")
    admin = await login(ADMIN_EMAIL, ADMIN_PASSWORD)

    r = await client.get("/v1/caretaker/dashboard", headers=bearer(caretaker))
    assert r.status_code == 200

    r = await client.get("/v1/admin/caretakers", params={"search": "ct@"}, headers=bearer(admin))
    assert r.status_code == 200
    [account] = r.json()
    assert account["status"] == "active"

    r = await client.post(
        f"/v1/admin/accounts/{account['subject']}/toggle-status", headers=bearer(admin)
    )
    assert r.status_code == 200
    assert r.json()["status"] == "blocked"

    # The caretaker's still-open session is signed out on its next resolution.
    r = await client.get("/v1/caretaker/dashboard", headers=bearer(caretaker))
    assert r.status_code == 403
    assert r.json()["intent"] == "redirect-blocked"
    assert r.json()["redirect_to"] == "/login?blocked=true"

    # The old token no longer verifies: plain redirect to login now.
    r = await client.get("/v1/caretaker/dashboard", headers=bearer(caretaker))
    assert r.status_code == 401

    r = await client.post(
        "/v1/auth/login", json={"email": "ct@example.com", "password": "secret-pass"}
    )
    assert r.status_code == 403
    assert r.json()["detail"] == "Your account has been blocked. Please contact the administrator."
    assert r.json()["redirect_to"] == "/login?blocked=true"

    # Unblocking restores access.
    r = await client.put(
        f"/v1/admin/accounts/{account['subject']}/status",
        json={"status": "active"},
        headers=bearer(admin),
    )
    assert r.status_code == 200
    assert (await login("ct@example.com")) is not None


@pytest.mark.asyncio
async def test_admin_dashboard_and_request_filter(
    client: httpx.AsyncClient, register, login
) -> None:
    caretaker = await register("ct@example.com", "caretaker")
    nri = await register("nri@example.com", "nri")
    admin = await login(ADMIN_EMAIL, ADMIN_PASSWORD)

    r = await client.post("/v1/caretaker/services", json={"name": "Rent"}, headers=bearer(caretaker))
    service_id = r.json()["id"]
    await _connect(client, nri, caretaker)
    for _ in range(2):
        await client.post("/v1/nri/requests", json={"service_id": service_id}, headers=bearer(nri))

    r = await client.get("/v1/admin/dashboard", headers=bearer(admin))
    board = r.json()
    assert board["total_nris"] == 1
    assert board["total_caretakers"] == 1
    assert board["total_requests"] == 2
    assert board["active_requests"] == 2
    assert board["completed_requests"] == 0

    r = await client.get(
        "/v1/admin/requests", params={"status": "completed"}, headers=bearer(admin)
    )
    assert r.json() == []

    r = await client.get("/v1/admin/dashboard", headers=bearer(nri))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_accounts_are_out_of_reach_of_status_changes(
    client: httpx.AsyncClient, login
) -> None:
    admin = await login(ADMIN_EMAIL, ADMIN_PASSWORD)
    subject = (await client.get("/v1/session", headers=bearer(admin))).json()["subject"]

    r = await client.post(f"/v1/admin/accounts/{subject}/toggle-status", headers=bearer(admin))
    assert r.status_code == 404
    r = await client.put(
        f"/v1/admin/accounts/{subject}/status",
        json={"status": "blocked"},
        headers=bearer(admin),
    )
    assert r.status_code == 404

    r = await client.get("/v1/admin/dashboard", headers=bearer(admin))
    assert r.status_code == 200
