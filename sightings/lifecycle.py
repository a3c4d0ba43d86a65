"""
Report lifecycle: submission awards and the once-only verification bonus.

A report moves ``pending -> verified`` and never back. ``verifiedAwarded``
is the only guard against paying the verification bonus twice, so the
check, the flag write and the credit all happen under the store lock.
"""

import logging
from typing import Callable, Optional
from uuid import uuid4

from .exceptions import NotFound, StorageFailure
from .models import Report, ReportStatus, SubmitResult, VerifyResult
from .points import PointsAccount
from .store import RecordSet

logger = logging.getLogger(__name__)

BASE_AWARD = 50
VERIFY_AWARD = 100


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


class ReportLifecycle:
    def __init__(
        self,
        reports: RecordSet,
        points: PointsAccount,
        base_award: int = BASE_AWARD,
        verify_award: int = VERIFY_AWARD,
        id_prefix: str = "s",
    ):
        self.reports = reports
        self.points = points
        self.base_award = base_award
        self.verify_award = verify_award
        self.id_prefix = id_prefix

    def submit_report(
        self,
        user_id: Optional[str],
        location: str = "",
        description: str = "",
        image_ref: Optional[str] = None,
    ) -> SubmitResult:
        report = Report(
            id=new_id(self.id_prefix),
            location=location,
            description=description,
            image_ref=image_ref,
            user_id=user_id,
            award=self.base_award,
        )
        with self.reports.lock:
            self._credit_with(user_id, self.base_award, lambda: self.reports.prepend(report.to_record()))

        logger.info("Report %s submitted, %d points to %s", report.id, self.base_award, user_id or "anonymous")
        return SubmitResult(report=report, award=self.base_award)

    def verify_report(self, report_id: str) -> VerifyResult:
        with self.reports.lock:
            report = self.get_report(report_id)
            if report.is_verified():
                logger.info("Report %s already verified, no award", report_id)
                return VerifyResult(success=False, report=report, already_verified=True, message="already verified")

            award = 0 if report.verified_awarded else self.verify_award
            verified = report.model_copy(update={"status": ReportStatus.VERIFIED, "verified_awarded": True})
            self._credit_with(
                report.user_id, award, lambda: self.reports.replace(report_id, verified.to_record())
            )

        logger.info("Report %s verified, bonus %d", report_id, award)
        return VerifyResult(success=True, report=verified, award=award, message="verified")

    def get_report(self, report_id: str) -> Report:
        data = self.reports.get(report_id)
        if data is None:
            raise NotFound(f"Report {report_id} not found")
        return Report.model_validate(data)

    def list_reports(self) -> list[Report]:
        return [Report.model_validate(r) for r in self.reports.all()]

    def _credit_with(self, user_id: Optional[str], amount: int, write: Callable[[], None]) -> None:
        """Credit ``amount`` and run the record write as one unit."""
        if not user_id or not amount:
            write()
            return

        self.points.credit(user_id, amount)
        try:
            write()
        except StorageFailure:
            with self.points.lock:
                self.points.debit(user_id, min(amount, self.points.balance(user_id)))
            raise
