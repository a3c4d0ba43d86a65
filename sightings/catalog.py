from typing import Iterable, Optional

from .exceptions import UnknownReward
from .models import RewardCatalogEntry

DEFAULT_REWARDS = (
    RewardCatalogEntry(id="rw-1", name="Conservation Sticker Pack", cost=150,
                       desc="A set of wildlife-protection stickers."),
    RewardCatalogEntry(id="rw-2", name="Volunteer Voucher", cost=400,
                       desc="Priority spot at one local volunteer event."),
    RewardCatalogEntry(id="rw-3", name="Field Guide", cost=900,
                       desc="A pocket guide to local wildlife species."),
)


class RewardCatalog:
    def __init__(self, entries: Optional[Iterable[RewardCatalogEntry]] = None):
        self._entries = tuple(DEFAULT_REWARDS if entries is None else entries)

    def entries(self) -> list[RewardCatalogEntry]:
        return list(self._entries)

    def get(self, reward_id: str) -> RewardCatalogEntry:
        for entry in self._entries:
            if entry.id == reward_id:
                return entry
        raise UnknownReward(f"Reward {reward_id} is not in the catalog")
