import logging
from typing import Optional

from .catalog import RewardCatalog
from .exceptions import NotFound, StorageFailure
from .lifecycle import new_id
from .models import Redemption
from .points import PointsAccount
from .store import RecordSet

logger = logging.getLogger(__name__)


class RedemptionManager:
    def __init__(self, redemptions: RecordSet, points: PointsAccount, catalog: RewardCatalog, id_prefix: str = "rd"):
        self.redemptions = redemptions
        self.points = points
        self.catalog = catalog
        self.id_prefix = id_prefix

    def redeem(self, user_id: str, reward_id: str) -> Redemption:
        """Spend points on a catalog reward and append the unsynced record.

        The debit and the record write succeed or fail together.
        """
        reward = self.catalog.get(reward_id)

        with self.redemptions.lock:
            self.points.debit(user_id, reward.cost)
            redemption = Redemption(
                id=new_id(self.id_prefix),
                user_id=user_id,
                reward_id=reward.id,
                reward_name=reward.name,
                cost=reward.cost,
                synced=False,
            )
            try:
                self.redemptions.prepend(redemption.to_record())
            except StorageFailure:
                self.points.credit(user_id, reward.cost)
                raise

        logger.info("%s redeemed %s for %d points", user_id, reward.id, reward.cost)
        return redemption

    def record(self, user_id: str, reward_id: str, client_ref: Optional[str] = None) -> Redemption:
        """Record a redemption spent elsewhere; replays of ``client_ref`` return the first record."""
        reward = self.catalog.get(reward_id)

        with self.redemptions.lock:
            if client_ref:
                existing = self.redemptions.find(
                    lambda r: r.get("clientRef") == client_ref and r.get("userId") == user_id
                )
                if existing:
                    logger.info("Redemption %s already recorded as %s", client_ref, existing["id"])
                    return Redemption.model_validate(existing)

            redemption = Redemption(
                id=new_id(self.id_prefix),
                user_id=user_id,
                reward_id=reward.id,
                reward_name=reward.name,
                cost=reward.cost,
                synced=True,
                client_ref=client_ref,
            )
            self.redemptions.prepend(redemption.to_record())
        return redemption

    def mark_synced(self, redemption_id: str) -> Redemption:
        with self.redemptions.lock:
            redemption = self.get(redemption_id)
            if redemption.synced:
                return redemption
            synced = redemption.model_copy(update={"synced": True})
            self.redemptions.replace(redemption_id, synced.to_record())
        return synced

    def get(self, redemption_id: str) -> Redemption:
        data = self.redemptions.get(redemption_id)
        if data is None:
            raise NotFound(f"Redemption {redemption_id} not found")
        return Redemption.model_validate(data)

    def list_redemptions(self, user_id: Optional[str] = None) -> list[Redemption]:
        return [
            Redemption.model_validate(r) for r in self.redemptions.all()
            if user_id is None or r.get("userId") == user_id
        ]

    def pending(self) -> list[Redemption]:
        return [r for r in self.list_redemptions() if not r.synced]
