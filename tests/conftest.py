from pathlib import Path

import pytest
from helpers import JWT_SECRET, WEBHOOK_SECRET
from ordering.order.store import OrderStore
from ordering.utils.db import create_db_engine, drop_db, setup_db
from payments.gateway.fake_adapter import FakeGateway
from payments.reconciliation.coordinator import ReconciliationCoordinator
from payments.reconciliation.signature import SignatureVerifier
from shared.config import Settings


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


# ---------------------------------------------------------------------------
# Domain
# ---------------------------------------------------------------------------
@pytest.fixture(scope="session")
def _ordering_domain():
    """Initialize the ordering domain once per session."""
    from ordering.domain import ordering

    ordering.init()
    return ordering


@pytest.fixture(autouse=True)
def _ctx(_ordering_domain):
    with _ordering_domain.domain_context():
        yield


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------
@pytest.fixture()
def settings(tmp_path):
    return Settings(
        _env_file=None,
        env="test",
        database_url=f"sqlite:///{tmp_path / 'orders.db'}",
        gateway_backend="fake",
        gateway_key_id="rzp_test_key",
        gateway_key_secret="rzp_test_secret",
        webhook_secret=WEBHOOK_SECRET,
        jwt_secret=JWT_SECRET,
        currency="INR",
    )


@pytest.fixture()
def engine(settings):
    engine = create_db_engine(settings.database_url)
    setup_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture()
def store(engine):
    return OrderStore(engine)


@pytest.fixture()
def gateway():
    return FakeGateway(public_key="rzp_test_key")


@pytest.fixture()
def coordinator(store, gateway):
    return ReconciliationCoordinator(
        store=store,
        gateway=gateway,
        verifier=SignatureVerifier(WEBHOOK_SECRET),
        currency="INR",
    )

