import pytest
import pytest_asyncio
import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock

from httpx import AsyncClient, ASGITransport

# --- SETUP: Set a testing flag before importing app components ---
os.environ["TESTING"] = "True"

# --- App Imports ---
from main import app
from food4need.config import NotificationSettings
from food4need.controllers.notification import get_dispatcher, get_settings
from food4need.models.notification import BroadcastResult, SendResult, SweepResult
from food4need.models.user import RestaurantProfile
from food4need.services.dispatcher import NotificationDispatcher
from food4need.services.ports import PushDeliveryError, RepositoryError

API_KEY = "test-event-key"


# --- Pytest Fixtures ---

@pytest.fixture
def mock_dispatcher():
    dispatcher = AsyncMock(spec=NotificationDispatcher)
    dispatcher.run_reminder_sweep.return_value = SweepResult(evaluated=3, matched=1, sent=1)
    dispatcher.run_proximity_broadcast.return_value = BroadcastResult(candidates=2, matched=1, sent=1)
    dispatcher.run_lifecycle_notification.return_value = None
    return dispatcher


@pytest_asyncio.fixture(scope="function")
async def client(mock_dispatcher) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_settings] = lambda: NotificationSettings(event_api_key=API_KEY)
    app.dependency_overrides[get_dispatcher] = lambda: mock_dispatcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_main_001_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_main_002_triggers_require_api_key(client: AsyncClient, mock_dispatcher):
    response = await client.post("/api/notifications/reminders/sweep")
    assert response.status_code == 401

    response = await client.post("/api/notifications/reminders/sweep", headers={"X-API-Key": "wrong"})
    assert response.status_code == 401
    mock_dispatcher.run_reminder_sweep.assert_not_awaited()


@pytest.mark.asyncio
async def test_main_003_unset_api_key_rejects_everything(client: AsyncClient):
    app.dependency_overrides[get_settings] = lambda: NotificationSettings()
    response = await client.post("/api/notifications/reminders/sweep", headers={"X-API-Key": ""})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_main_004_sweep_returns_summary(client: AsyncClient, mock_dispatcher):
    response = await client.post("/api/notifications/reminders/sweep", headers={"X-API-Key": API_KEY})
    assert response.status_code == 200, response.text
    assert response.json()["matched"] == 1
    mock_dispatcher.run_reminder_sweep.assert_awaited_once()


@pytest.mark.asyncio
async def test_main_005_repository_error_maps_to_503(client: AsyncClient, mock_dispatcher):
    mock_dispatcher.run_reminder_sweep.side_effect = RepositoryError("db down")
    response = await client.post("/api/notifications/reminders/sweep", headers={"X-API-Key": API_KEY})
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_main_006_push_error_maps_to_502(client: AsyncClient, mock_dispatcher):
    mock_dispatcher.run_proximity_broadcast.side_effect = PushDeliveryError("FCM down")
    donation = {"id": "d1", "title": "Bread", "latitude": 3.139, "longitude": 101.6869}
    response = await client.post("/api/notifications/events/donation-created",
                                 headers={"X-API-Key": API_KEY}, json=donation)
    assert response.status_code == 502


@pytest.mark.asyncio
async def test_main_007_donation_created_runs_broadcast(client: AsyncClient, mock_dispatcher):
    donation = {"id": "d1", "title": "Bread", "latitude": 3.139, "longitude": 101.6869,
                "status": "available", "restaurant_id": "r1"}
    response = await client.post("/api/notifications/events/donation-created",
                                 headers={"X-API-Key": API_KEY}, json=donation)
    assert response.status_code == 200, response.text
    assert response.json()["sent"] == 1
    (sent_donation,), _ = mock_dispatcher.run_proximity_broadcast.call_args
    assert sent_donation.title == "Bread"


@pytest.mark.asyncio
async def test_main_008_donation_updated_with_real_dispatcher(client: AsyncClient):
    users = AsyncMock()
    users.get_by_id.return_value = RestaurantProfile(id="r1", push_token="tok-1", closing_time="19:00")
    sink = AsyncMock()
    sink.send_batch.return_value = [SendResult(token="tok-1", recipient_id="r1", success=True, message_id="m1")]
    app.dependency_overrides[get_dispatcher] = lambda: NotificationDispatcher(users, sink)

    event = {
        "before": {"id": "d1", "title": "Kuih", "status": "available", "restaurant_id": "r1"},
        "after": {"id": "d1", "title": "Kuih", "status": "reserved", "restaurant_id": "r1", "ngo_id": "n1"},
    }
    response = await client.post("/api/notifications/events/donation-updated",
                                 headers={"X-API-Key": API_KEY}, json=event)

    assert response.status_code == 200, response.text
    assert response.json()["message_id"] == "m1"
    users.get_by_id.assert_awaited_once_with("r1")


@pytest.mark.asyncio
async def test_main_009_donation_updated_without_transition_returns_null(client: AsyncClient, mock_dispatcher):
    event = {
        "before": {"id": "d1", "status": "reserved", "restaurant_id": "r1"},
        "after": {"id": "d1", "status": "reserved", "restaurant_id": "r1"},
    }
    response = await client.post("/api/notifications/events/donation-updated",
                                 headers={"X-API-Key": API_KEY}, json=event)
    assert response.status_code == 200
    assert response.json() is None
