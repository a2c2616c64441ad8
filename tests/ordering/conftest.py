import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    from protean import current_domain

    with ordering_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()


@pytest.fixture(autouse=True)
def _fresh_gateway():
    from ordering.payment.gateway import reset_gateway

    reset_gateway()
    yield
    reset_gateway()
