import pytest
from fastapi.testclient import TestClient

from deadswitch.api.main import app, install_service
from deadswitch.util import ManualClock

from support import START, FixedBalance, RecordingAssetTransfer, RecordingLedger, make_service


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def ledger():
    return RecordingLedger()


@pytest.fixture
def asset_transfer():
    return RecordingAssetTransfer()


# Fresh service per test for isolation
@pytest.fixture
def service(clock, ledger, asset_transfer):
    svc = make_service(clock=clock, ledger=ledger, asset_transfer=asset_transfer,
                       balance_service=FixedBalance(125_000))
    install_service(svc)
    yield svc
    install_service(make_service())


@pytest.fixture
def client(service):
    return TestClient(app)
