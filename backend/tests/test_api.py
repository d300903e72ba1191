"""
HTTP surface of the helper service (FastAPI TestClient, no browser).
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_agent_factory, get_driver, get_relay, get_session_service
from app.main import app
from app.services.browser_agent import AgentState, AgentStep, AgentTurn
from app.services.browser_tools import ToolStatus
from app.services.google_session import GoogleSessionService
from app.services.relay_queue import RequestKind


@pytest.fixture
def agent():
    agent = MagicMock()
    agent.run = AsyncMock()
    return agent


@pytest.fixture
def agent_factory(agent):
    return MagicMock(return_value=agent)


@pytest.fixture
def client(fake_driver, relay, agent_factory):
    app.dependency_overrides[get_driver] = lambda: fake_driver
    app.dependency_overrides[get_relay] = lambda: relay
    app.dependency_overrides[get_agent_factory] = lambda: agent_factory
    app.dependency_overrides[get_session_service] = lambda: GoogleSessionService(driver=fake_driver)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_invoke_requires_prompt(client):
    resp = client.post("/invoke", json={"prompt": "  "})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Prompt is required"}


def test_calendar_prompt_without_session_asks_for_login(client, fake_driver, agent_factory):
    resp = client.post("/invoke", json={"prompt": "Add a calendar event for lunch tomorrow"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert body["needsLogin"] is True
    assert body["error"] == "Not logged into Google Calendar. Please log in first."
    agent_factory.assert_not_called()
    fake_driver.ensure_open.assert_not_awaited()
    fake_driver.run_script.assert_not_awaited()


def test_invoke_returns_agent_output_and_closes_browser(client, fake_driver, agent):
    sent = 'Successfully sent email to bob@example.com with subject "Hi" regarding: hello'
    agent.run.return_value = AgentTurn(
        input="email bob",
        steps=[AgentStep("send_email", {"recipient_email": "bob@example.com"}, sent, ToolStatus.SUCCESS)],
        output=sent,
        state=AgentState.SUCCESS,
    )

    resp = client.post("/invoke", json={"prompt": "email bob@example.com saying hello"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["result"] == body["output"] == sent
    assert body["intermediateSteps"][0]["action"]["tool"] == "send_email"
    assert body["intermediateSteps"][0]["status"] == "success"
    assert "needsLogin" not in body
    fake_driver.close.assert_awaited_once()


def test_invoke_agent_failure_is_500_with_details(client, fake_driver, agent):
    agent.run.side_effect = RuntimeError("planner exploded")

    resp = client.post("/invoke", json={"prompt": "open gmail"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to execute agent", "details": "planner exploded"}
    fake_driver.close.assert_awaited_once()


def test_tab_requests_round_trip(client, relay):
    request_id = relay.enqueue(RequestKind.SCREENSHOT)

    listed = client.get("/tab-requests").json()["requests"]
    assert listed[0]["id"] == request_id
    assert listed[0]["status"] == "pending"
    assert listed[0]["kind"] == "screenshot"

    resp = client.post(f"/tab-requests/{request_id}/complete", json={"success": True, "filename": "shot.png"})
    assert resp.json() == {"success": True}
    assert relay.get(request_id).result == {"success": True, "filename": "shot.png"}

    again = client.post(f"/tab-requests/{request_id}/complete", json={"error": "late"})
    assert again.status_code == 409
    assert relay.get(request_id).error is None


def test_complete_unknown_request_is_404(client):
    resp = client.post("/tab-requests/123/complete", json={"success": True})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Request not found"}


def test_auth_status(client, fake_driver):
    body = client.get("/auth/status").json()
    assert body == {
        "loggedIn": False,
        "currentUrl": None,
        "browserDataDir": str(fake_driver.user_data_dir),
        "browserOpen": False,
    }


def test_google_login_returns_immediately(client):
    service = MagicMock()
    service.start_google_login = AsyncMock()
    app.dependency_overrides[get_session_service] = lambda: service

    resp = client.post("/auth/google-login")

    assert resp.status_code == 200
    assert "complete Google login" in resp.json()["message"]
    service.start_google_login.assert_awaited_once()


def test_navigate(client):
    service = MagicMock()
    service.navigate_then_close = AsyncMock(return_value="https://example.com")
    app.dependency_overrides[get_session_service] = lambda: service

    resp = client.post("/browser/navigate", json={"url": "example.com"})

    assert resp.json() == {"success": True, "url": "https://example.com"}


def test_navigate_failure_uses_error_envelope(client):
    service = MagicMock()
    service.navigate_then_close = AsyncMock(side_effect=RuntimeError("net::ERR_NAME_NOT_RESOLVED"))
    app.dependency_overrides[get_session_service] = lambda: service

    resp = client.post("/browser/navigate", json={"url": "nowhere.invalid"}, headers={"X-Request-ID": "req-1"})

    assert resp.status_code == 500
    assert resp.json() == {"detail": "net::ERR_NAME_NOT_RESOLVED", "request_id": "req-1"}
    assert resp.headers["X-Request-ID"] == "req-1"


def test_health(client, relay):
    relay.enqueue(RequestKind.OPEN_TAB, {"url": "https://example.com"})
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["browserInitialized"] is False
    assert body["pendingRequests"] == 1
    assert "llm" in body["dependencies"]
