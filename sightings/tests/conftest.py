"""
Shared fixtures for the sightings test suite.

Provides:
  - ``FailingSnapshot``: memory snapshot whose writes can be switched off,
    with an optional hook that runs just before the write fails.
  - ``service`` / ``client`` fixtures wired to in-memory stores.
  - ``ServiceGateway`` / ``DownGateway`` stand-ins for the HTTP gateway.
"""

import pytest

from sightings.catalog import RewardCatalog
from sightings.client import SightingClient
from sightings.exceptions import NetworkFailure, StorageFailure
from sightings.models import RedeemRequest, RewardCatalogEntry, SubmitReportRequest
from sightings.service import SightingService
from sightings.store import MemorySnapshot

USER_ID = "u-1718000000000-abc1234"

TEST_REWARDS = [
    RewardCatalogEntry(id="rw-1", name="Conservation Sticker Pack", cost=150),
    RewardCatalogEntry(id="rw-2", name="Volunteer Voucher", cost=200),
    RewardCatalogEntry(id="rw-3", name="Field Guide", cost=900),
]


class FailingSnapshot(MemorySnapshot):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail = False
        self.before_fail = None

    def save(self, data):
        if self.fail:
            if self.before_fail is not None:
                self.before_fail()
            raise StorageFailure("disk full")
        super().save(data)


class ServiceGateway:
    """Gateway that talks to an in-process ``SightingService``."""

    def __init__(self, service: SightingService, award=None):
        self.service = service
        self.award = award
        self.calls = 0

    def submit_report(self, user_id, report):
        self.calls += 1
        result = self.service.submit_report(SubmitReportRequest(
            user_id=user_id,
            location=report.location,
            description=report.description,
            image_ref=report.image_ref or "evidence.jpg",
        ))
        if self.award is not None:
            result = result.model_copy(update={"award": self.award})
        return result

    def record_redemption(self, redemption):
        self.calls += 1
        return self.service.redeem(RedeemRequest(
            user_id=redemption.user_id,
            reward_id=redemption.reward_id,
            client_ref=redemption.id,
        ))


class DownGateway:
    def __init__(self):
        self.calls = 0

    def submit_report(self, user_id, report):
        self.calls += 1
        raise NetworkFailure("connection refused")

    def record_redemption(self, redemption):
        self.calls += 1
        raise NetworkFailure("timed out")


@pytest.fixture()
def catalog() -> RewardCatalog:
    return RewardCatalog(TEST_REWARDS)


@pytest.fixture()
def service(catalog) -> SightingService:
    return SightingService(catalog=catalog)


@pytest.fixture()
def offline_client(catalog):
    client = SightingClient(user_id=USER_ID, catalog=catalog)
    yield client
    client.close()
