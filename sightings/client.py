"""
Client side of the reconciliation protocol.

Every user action runs in three explicit phases:

1. ``apply_local_*``: applied to the local stores unconditionally, awards
   and debits happen here.
2. ``attempt_remote_*``: the same action against the server, on a worker
   thread with a bounded HTTP timeout. Any failure is a ``NetworkFailure``.
3. ``reconcile_*``: on success the server outcome wins; on failure the
   local outcome stands as the only record.

Debits are never rolled back on sync failure and nothing retries in the
background; ``retry_redemption`` and ``sync_pending`` are the explicit
retry path.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Union
from uuid import uuid4

import requests

from .assets import FileAssetStore, encode_data_url
from .catalog import RewardCatalog
from .config import Settings
from .exceptions import NetworkFailure, SimulateVerifyUnavailable, StorageFailure
from .lifecycle import BASE_AWARD, VERIFY_AWARD, ReportLifecycle
from .models import Redemption, Report, ReportStatus, RewardCatalogEntry, SubmitResult, VerifyResult
from .points import PointsAccount
from .redemptions import RedemptionManager
from .store import JsonFileSnapshot, MemorySnapshot, RecordSet

logger = logging.getLogger(__name__)


def new_user_id() -> str:
    return f"u-{int(time.time() * 1000)}-{uuid4().hex[:7]}"


class RemoteGateway:
    """HTTP access to the server ledger."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
        assets: Optional[FileAssetStore] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.assets = assets

    def submit_report(self, user_id: str, report: Report) -> SubmitResult:
        payload = {
            "userId": user_id,
            "location": report.location,
            "description": report.description,
        }
        if self.assets is not None and report.image_ref:
            ext = report.image_ref.rsplit(".", 1)[-1] if "." in report.image_ref else "jpeg"
            payload["captured"] = encode_data_url(self.assets.fetch(report.image_ref), ext)
        else:
            payload["imageRef"] = report.image_ref
        return self._post("/api/reports", payload, SubmitResult.model_validate)

    def record_redemption(self, redemption: Redemption) -> Redemption:
        payload = {
            "userId": redemption.user_id,
            "rewardId": redemption.reward_id,
            "clientRef": redemption.id,
        }
        return self._post("/api/redeem", payload, _parse_redemption)

    def _post(self, path: str, payload: dict, parse: Callable[[Any], Any]):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return parse(response.json())
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            raise NetworkFailure(f"POST {url} failed: {e}") from e


def _parse_redemption(body: dict) -> Redemption:
    if not body.get("success"):
        raise ValueError("server did not accept the redemption")
    return Redemption.model_validate(body["redemption"])


@dataclass
class Submission:
    report: Report
    award: int
    remote: Future


@dataclass
class RedemptionAttempt:
    redemption: Redemption
    remote: Future


class SightingClient:
    def __init__(
        self,
        user_id: Optional[str] = None,
        reports: Optional[RecordSet] = None,
        redemptions: Optional[RecordSet] = None,
        points: Optional[PointsAccount] = None,
        catalog: Optional[RewardCatalog] = None,
        gateway: Optional[RemoteGateway] = None,
        base_award: int = BASE_AWARD,
        verify_award: int = VERIFY_AWARD,
        executor: Optional[ThreadPoolExecutor] = None,
        lock: Optional[threading.RLock] = None,
    ):
        if lock is None:
            lock = threading.RLock()
        self.user_id = user_id or new_user_id()
        self.points = points if points is not None else PointsAccount(lock=lock)
        self.catalog = catalog if catalog is not None else RewardCatalog()
        self.lifecycle = ReportLifecycle(
            reports if reports is not None else RecordSet(MemorySnapshot(), lock),
            self.points,
            base_award=base_award,
            verify_award=verify_award,
            id_prefix="r",
        )
        self.redemption_manager = RedemptionManager(
            redemptions if redemptions is not None else RecordSet(MemorySnapshot(), lock),
            self.points,
            self.catalog,
        )
        self.gateway = gateway
        self.server_reachable = False
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="sightings-sync")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        local_dir: Union[str, Path],
        user_id: Optional[str] = None,
        assets: Optional[FileAssetStore] = None,
    ) -> "SightingClient":
        local_dir = Path(local_dir)
        gateway = None
        if settings.remote_base_url:
            gateway = RemoteGateway(settings.remote_base_url, settings.remote_timeout_seconds, assets=assets)
        lock = threading.RLock()
        return cls(
            user_id=user_id,
            reports=RecordSet(JsonFileSnapshot(local_dir / "reports.json"), lock),
            redemptions=RecordSet(JsonFileSnapshot(local_dir / "redemptions.json"), lock),
            points=PointsAccount(JsonFileSnapshot(local_dir / "points.json", default=dict), lock),
            gateway=gateway,
            base_award=settings.base_award,
            verify_award=settings.verify_award,
            lock=lock,
        )

    @property
    def balance(self) -> int:
        return self.points.balance(self.user_id)

    def reports(self) -> list[Report]:
        return self.lifecycle.list_reports()

    def redemptions(self) -> list[Redemption]:
        return self.redemption_manager.list_redemptions(self.user_id)

    def pending_redemptions(self) -> list[Redemption]:
        return [r for r in self.redemptions() if not r.synced]

    def reward_catalog(self) -> list[RewardCatalogEntry]:
        return self.catalog.entries()

    # Reports

    def submit_report(self, location: str, description: str = "", image_ref: Optional[str] = None) -> Submission:
        """Store and award the report locally, then mirror it to the server.

        Every call is a new report and a new award; callers must not submit
        the same sighting twice while ``remote`` is still running.
        """
        local = self.apply_local_submit(location, description, image_ref)
        remote = self._executor.submit(self._sync_submission, local)
        return Submission(report=local.report, award=local.award, remote=remote)

    def apply_local_submit(self, location: str, description: str = "", image_ref: Optional[str] = None) -> SubmitResult:
        return self.lifecycle.submit_report(self.user_id, location=location, description=description, image_ref=image_ref)

    def attempt_remote_submit(self, report: Report) -> SubmitResult:
        if self.gateway is None:
            raise NetworkFailure("no server configured")
        return self.gateway.submit_report(self.user_id, report)

    def reconcile_submission(self, local: SubmitResult, remote: SubmitResult) -> Report:
        """Replace the local report with the server copy; the server award wins.

        A report already verified locally stays verified.
        """
        reports = self.lifecycle.reports
        with reports.lock, self.points.lock:
            update = {
                "local_id": local.report.id,
                "award": remote.award,
                "image_ref": local.report.image_ref or remote.report.image_ref,
            }
            current = reports.get(local.report.id)
            if current is not None and Report.model_validate(current).is_verified():
                update.update(status=ReportStatus.VERIFIED, verified_awarded=True)
            canonical = remote.report.model_copy(update=update)

            correction = remote.award - local.award
            if correction < 0:
                correction = -min(-correction, self.balance)
            self._adjust_points(correction)
            try:
                reports.replace(local.report.id, canonical.to_record())
            except StorageFailure:
                self._adjust_points(-correction)
                raise

        if correction:
            logger.info("Award for %s corrected by %+d to server value %d", canonical.id, correction, remote.award)
        return canonical

    def _adjust_points(self, amount: int) -> None:
        if amount > 0:
            self.points.credit(self.user_id, amount)
        elif amount < 0:
            self.points.debit(self.user_id, -amount)

    def _sync_submission(self, local: SubmitResult) -> Report:
        try:
            remote = self.attempt_remote_submit(local.report)
        except NetworkFailure as e:
            logger.warning("Report %s kept local only: %s", local.report.id, e)
            return local.report
        self.server_reachable = True
        return self.reconcile_submission(local, remote)

    def simulate_verify(self, report_id: str) -> VerifyResult:
        """Verify a local report when no server exists to do it."""
        if self.gateway is not None or self.server_reachable:
            raise SimulateVerifyUnavailable("reports are verified by the server")
        return self.lifecycle.verify_report(report_id)

    # Redemptions

    def redeem(self, reward_id: str) -> RedemptionAttempt:
        redemption = self.redemption_manager.redeem(self.user_id, reward_id)
        remote = self._executor.submit(self._sync_redemption, redemption.id)
        return RedemptionAttempt(redemption=redemption, remote=remote)

    def retry_redemption(self, redemption_id: str) -> Future:
        return self._executor.submit(self._sync_redemption, redemption_id)

    def sync_pending(self) -> list[Future]:
        return [self.retry_redemption(r.id) for r in self.pending_redemptions()]

    def attempt_remote_redemption(self, redemption: Redemption) -> Redemption:
        if self.gateway is None:
            raise NetworkFailure("no server configured")
        return self.gateway.record_redemption(redemption)

    def _sync_redemption(self, redemption_id: str) -> Redemption:
        redemption = self.redemption_manager.get(redemption_id)
        if redemption.synced:
            return redemption
        try:
            self.attempt_remote_redemption(redemption)
        except NetworkFailure as e:
            logger.warning("Redemption %s left unsynced: %s", redemption_id, e)
            return redemption
        self.server_reachable = True
        return self.redemption_manager.mark_synced(redemption_id)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "SightingClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
