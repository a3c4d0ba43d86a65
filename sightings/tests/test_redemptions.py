"""
Unit Tests for the Redemption Manager

Tests cover:
1. Affordability checks and the zero-balance boundary
2. Debit and record written together
3. Server-side recording and replay of the same client redemption
4. Catalog lookups
"""

import pytest
from pydantic import ValidationError

from sightings.catalog import DEFAULT_REWARDS, RewardCatalog
from sightings.exceptions import InsufficientFunds, NotFound, StorageFailure, UnknownReward
from sightings.points import PointsAccount
from sightings.redemptions import RedemptionManager
from sightings.store import MemorySnapshot, RecordSet
from conftest import FailingSnapshot, USER_ID


def make_manager(catalog, balance=0, snapshot=None):
    points = PointsAccount()
    if balance:
        points.credit(USER_ID, balance)
    manager = RedemptionManager(RecordSet(snapshot or MemorySnapshot()), points, catalog)
    return manager, points


class TestRedeemFlow:
    """Tests for spending points on rewards."""

    def test_redeem_debits_and_records_unsynced(self, catalog):
        manager, points = make_manager(catalog, balance=500)

        redemption = manager.redeem(USER_ID, "rw-2")

        assert redemption.id.startswith("rd-")
        assert redemption.reward_name == "Volunteer Voucher"
        assert redemption.cost == 200
        assert redemption.synced is False
        assert points.balance(USER_ID) == 300
        assert [r.id for r in manager.pending()] == [redemption.id]

    def test_insufficient_funds_changes_nothing(self, catalog):
        """Balance 150 cannot buy a 200 point reward."""
        manager, points = make_manager(catalog, balance=150)

        with pytest.raises(InsufficientFunds):
            manager.redeem(USER_ID, "rw-2")

        assert points.balance(USER_ID) == 150
        assert manager.list_redemptions() == []

    def test_cost_equal_to_balance_succeeds(self, catalog):
        manager, points = make_manager(catalog, balance=200)

        manager.redeem(USER_ID, "rw-2")

        assert points.balance(USER_ID) == 0

    def test_unknown_reward(self, catalog):
        manager, points = make_manager(catalog, balance=1000)

        with pytest.raises(UnknownReward):
            manager.redeem(USER_ID, "rw-404")
        assert points.balance(USER_ID) == 1000

    def test_failed_record_write_refunds_debit(self, catalog):
        """A debit without a recorded redemption never survives."""
        snapshot = FailingSnapshot()
        manager, points = make_manager(catalog, balance=500, snapshot=snapshot)
        snapshot.fail = True

        with pytest.raises(StorageFailure):
            manager.redeem(USER_ID, "rw-1")

        assert points.balance(USER_ID) == 500
        assert manager.list_redemptions() == []

    def test_refund_keeps_other_balance_changes(self, catalog):
        """The refund adds the cost back instead of resetting the balance."""
        snapshot = FailingSnapshot()
        manager, points = make_manager(catalog, balance=500, snapshot=snapshot)
        snapshot.fail = True
        snapshot.before_fail = lambda: points.credit(USER_ID, 50)

        with pytest.raises(StorageFailure):
            manager.redeem(USER_ID, "rw-1")

        assert points.balance(USER_ID) == 550
        assert manager.list_redemptions() == []

    def test_newest_first(self, catalog):
        manager, _ = make_manager(catalog, balance=1000)
        first = manager.redeem(USER_ID, "rw-1")
        second = manager.redeem(USER_ID, "rw-2")

        assert [r.id for r in manager.list_redemptions(USER_ID)] == [second.id, first.id]

    def test_mark_synced_keeps_identity(self, catalog):
        """Syncing flips the flag only; id, cost and reward stay put."""
        manager, _ = make_manager(catalog, balance=500)
        redemption = manager.redeem(USER_ID, "rw-1")

        synced = manager.mark_synced(redemption.id)

        assert synced.synced is True
        assert (synced.id, synced.cost, synced.reward_id) == (redemption.id, redemption.cost, redemption.reward_id)
        assert manager.pending() == []

    def test_mark_synced_unknown(self, catalog):
        manager, _ = make_manager(catalog)
        with pytest.raises(NotFound):
            manager.mark_synced("rd-missing")


class TestServerRecording:
    """Tests for recording redemptions replicated from clients."""

    def test_record_copies_catalog_values(self, catalog):
        manager, points = make_manager(catalog)

        redemption = manager.record(USER_ID, "rw-3", client_ref="rd-local-1")

        assert redemption.cost == 900
        assert redemption.reward_name == "Field Guide"
        assert redemption.synced is True
        assert points.balance(USER_ID) == 0

    def test_replayed_client_ref_is_not_duplicated(self, catalog):
        manager, _ = make_manager(catalog)

        first = manager.record(USER_ID, "rw-1", client_ref="rd-local-1")
        second = manager.record(USER_ID, "rw-1", client_ref="rd-local-1")

        assert second.id == first.id
        assert len(manager.list_redemptions()) == 1

    def test_record_without_client_ref_always_appends(self, catalog):
        manager, _ = make_manager(catalog)
        manager.record(USER_ID, "rw-1")
        manager.record(USER_ID, "rw-1")
        assert len(manager.list_redemptions()) == 2

    def test_record_unknown_reward(self, catalog):
        manager, _ = make_manager(catalog)
        with pytest.raises(UnknownReward):
            manager.record(USER_ID, "rw-404")


class TestRewardCatalog:

    def test_repeated_reads_are_identical(self):
        catalog = RewardCatalog()
        first = [(e.id, e.name, e.cost) for e in catalog.entries()]
        second = [(e.id, e.name, e.cost) for e in catalog.entries()]

        assert first == second
        assert first == [(e.id, e.name, e.cost) for e in DEFAULT_REWARDS]

    def test_entries_are_read_only(self):
        entry = RewardCatalog().entries()[0]
        with pytest.raises(ValidationError):
            entry.cost = 1
        assert RewardCatalog().get(entry.id).cost == DEFAULT_REWARDS[0].cost
