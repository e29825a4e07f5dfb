import pytest

from demandplus.services.demand_service import DemandService
from demandplus.services.notification_service import NotificationService
from demandplus.services.storage import JsonFileStore
from tests.factories import TODAY


@pytest.fixture
def store(tmp_path):
    return JsonFileStore(tmp_path / "demand_plus.json")


@pytest.fixture
def notifier():
    return NotificationService()


@pytest.fixture
def service(store, notifier):
    svc = DemandService(store, notifier, clock=lambda: TODAY)
    svc.load()
    return svc
