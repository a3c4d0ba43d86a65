import threading
from typing import Optional

from .assets import FileAssetStore, decode_data_url
from .catalog import RewardCatalog
from .config import Settings
from .exceptions import InvalidImage, NotFound
from .lifecycle import BASE_AWARD, VERIFY_AWARD, ReportLifecycle
from .models import (
    Redemption,
    RedeemRequest,
    Report,
    RewardCatalogEntry,
    SubmitReportRequest,
    SubmitResult,
    UserBalance,
    VerifyResult,
)
from .points import PointsAccount
from .redemptions import RedemptionManager
from .store import JsonFileSnapshot, MemorySnapshot, RecordSet


class SightingService:
    """Authoritative server-side ledger.

    Reports, redemptions and awarded points share one writer lock, so every
    read-modify-write on either set is serialized within the process.
    """

    def __init__(
        self,
        reports_snapshot=None,
        redemptions_snapshot=None,
        points_snapshot=None,
        catalog: Optional[RewardCatalog] = None,
        assets: Optional[FileAssetStore] = None,
        base_award: int = BASE_AWARD,
        verify_award: int = VERIFY_AWARD,
    ):
        self.lock = threading.RLock()
        self.catalog = catalog or RewardCatalog()
        self.assets = assets
        self.points = PointsAccount(points_snapshot or MemorySnapshot(default=dict), self.lock)
        self.lifecycle = ReportLifecycle(
            RecordSet(reports_snapshot or MemorySnapshot(), self.lock),
            self.points,
            base_award=base_award,
            verify_award=verify_award,
            id_prefix="s",
        )
        self.redemptions = RedemptionManager(
            RecordSet(redemptions_snapshot or MemorySnapshot(), self.lock),
            self.points,
            self.catalog,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "SightingService":
        return cls(
            reports_snapshot=JsonFileSnapshot(settings.reports_path()),
            redemptions_snapshot=JsonFileSnapshot(settings.redemptions_path()),
            points_snapshot=JsonFileSnapshot(settings.points_path(), default=dict),
            assets=FileAssetStore(settings.uploads_path(), settings.max_upload_bytes),
            base_award=settings.base_award,
            verify_award=settings.verify_award,
        )

    def submit_report(self, request: SubmitReportRequest) -> SubmitResult:
        image_ref = self._resolve_image(request)
        return self.lifecycle.submit_report(
            request.user_id,
            location=request.location,
            description=request.description,
            image_ref=image_ref,
        )

    def verify_report(self, report_id: str) -> VerifyResult:
        return self.lifecycle.verify_report(report_id)

    def get_report(self, report_id: str) -> Report:
        return self.lifecycle.get_report(report_id)

    def list_reports(self) -> list[Report]:
        return self.lifecycle.list_reports()

    def reward_catalog(self) -> list[RewardCatalogEntry]:
        return self.catalog.entries()

    def redeem(self, request: RedeemRequest) -> Redemption:
        return self.redemptions.record(request.user_id, request.reward_id, client_ref=request.client_ref)

    def get_balance(self, user_id: str) -> UserBalance:
        return UserBalance(user_id=user_id, balance=self.points.balance(user_id))

    def fetch_image(self, image_ref: str) -> bytes:
        if self.assets is None:
            raise NotFound(f"Image {image_ref} not found")
        return self.assets.fetch(image_ref)

    def _resolve_image(self, request: SubmitReportRequest) -> str:
        if request.captured:
            if self.assets is None:
                raise InvalidImage("image storage is not configured")
            data, ext = decode_data_url(request.captured)
            return self.assets.store(data, ext)
        if request.image_ref:
            return request.image_ref
        raise InvalidImage("image required")
