import pytest
from fastapi.testclient import TestClient

from booking_app.api.dependencies import Backend, get_backend
from booking_app.main import app
from booking_app.services.auth_service import LocalAuthProvider
from booking_app.services.booking_service import BookingService
from booking_app.services.local_store import LocalRecordStore
from booking_app.services.notification_service import NotificationHub, NotificationService


@pytest.fixture
def store(tmp_path):
    return LocalRecordStore(tmp_path / "store.json")


@pytest.fixture
def notification_hub():
    return NotificationHub()


@pytest.fixture
def backend(store, notification_hub):
    notifications = NotificationService(store, notification_hub)
    return Backend(
        store=store,
        auth=LocalAuthProvider(store),
        bookings=BookingService(store, notifications),
        notifications=notifications,
    )


@pytest.fixture
def client(backend):
    app.dependency_overrides[get_backend] = lambda: backend
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(client):
    def _login(email, password):
        response = client.post("/booking-server/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['accessToken']}"}
    return _login


@pytest.fixture
def user_headers(login_as):
    return login_as("demo@user.com", "demo123")


@pytest.fixture
def admin_headers(login_as):
    return login_as("roger@gmail.com", "gerger1")
