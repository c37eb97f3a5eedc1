"""Tier-based retention for buffered scans.

Free tier: confirmed scans are deleted on every sweep, since the local
server already holds them, and buffered scans older than
FREE_TIER_STALE_BUFFER_DAYS are dropped so a site that never comes back
cannot grow the store without bound.

Paid tier: everything is kept.
"""

import logging
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from eckwms.domain.identity import Tier
from eckwms.extensions import db
from eckwms.utils.clock import isoformat_utc, utcnow

log = logging.getLogger(__name__)


class RetentionReport:
    """Outcome of one sweep, one entry per policy step."""

    def __init__(self, started_at):
        self.started_at = started_at
        self.steps = []

    def add(self, category, tier, deleted, reason, error=None):
        self.steps.append({
            "category": category,
            "tier": tier,
            "deleted": deleted,
            "reason": reason,
            "error": error
        })

    @property
    def total_deleted(self):
        return sum(step["deleted"] for step in self.steps)

    @property
    def failed_steps(self):
        return [step for step in self.steps if step["error"]]

    @property
    def succeeded(self):
        return not self.failed_steps

    def to_dict(self):
        return {
            "started_at": isoformat_utc(self.started_at),
            "total_deleted": self.total_deleted,
            "succeeded": self.succeeded,
            "steps": list(self.steps)
        }


class RetentionService:
    """Applies the retention policy to the scan store."""

    def __init__(self, scan_repository, config, db_instance=None, clock=utcnow):
        """Initialize RetentionService.

        Args:
            scan_repository: Repository for scans
            config: Application config mapping
            db_instance: SQLAlchemy database instance
            clock: Callable returning the current naive UTC time
        """
        self.scan_repository = scan_repository
        self.config = config
        self.db = db_instance or db
        self.clock = clock

    @property
    def stale_buffer_days(self):
        return self.config.get('FREE_TIER_STALE_BUFFER_DAYS', 7)

    @property
    def confirmed_grace_days(self):
        return self.config.get('CONFIRMED_GRACE_DAYS', 7)

    def _policy_steps(self, now):
        stale_before = now - timedelta(days=self.stale_buffer_days)
        return [
            (
                "confirmed",
                Tier.FREE.value,
                "confirmed scans are already held by the local server",
                lambda: self.scan_repository.delete_confirmed_for_tier(Tier.FREE.value)
            ),
            (
                "stale_buffered",
                Tier.FREE.value,
                f"buffered for more than {self.stale_buffer_days} days",
                lambda: self.scan_repository.delete_stale_buffered_for_tier(Tier.FREE.value, stale_before)
            ),
        ]

    def run_sweep(self, now=None):
        """Run every retention step once.

        A failing step is rolled back, logged and recorded in the report;
        the remaining steps still run.

        Returns:
            RetentionReport
        """
        now = now or self.clock()
        report = RetentionReport(now)
        log.info("Retention sweep starting")

        for category, tier, reason, step in self._policy_steps(now):
            try:
                deleted = step()
            except Exception as e:
                self.db.session.rollback()
                log.error(
                    f"Retention step {category} for {tier} tier failed: {str(e)}",
                    extra={"retention": {"category": category, "tier": tier, "reason": reason}}
                )
                report.add(category, tier, 0, reason, error=str(e))
                continue

            report.add(category, tier, deleted, reason)
            if deleted:
                log.info(
                    f"Retention deleted {deleted} {category} scans ({tier} tier): {reason}",
                    extra={"retention": {"category": category, "tier": tier, "count": deleted, "reason": reason}}
                )

        log.debug("Paid tier: all scans retained")
        log.info(f"Retention sweep completed: {report.total_deleted} scans deleted, "
                 f"{len(report.failed_steps)} steps failed")
        return report

    def cleanup_after_confirm(self, identity, now=None):
        """Drop an instance's old confirmed scans right after it confirms.

        Only the free tier is affected. Errors are logged and swallowed
        because the scheduled sweep remains the authoritative cleanup.

        Returns:
            int: Number of scans deleted
        """
        if not identity.is_free_tier:
            return 0

        now = now or self.clock()
        updated_before = now - timedelta(days=self.confirmed_grace_days)
        try:
            deleted = self.scan_repository.delete_confirmed_for_instance(identity.id, updated_before)
        except SQLAlchemyError as e:
            self.db.session.rollback()
            log.error(f"Post-confirm cleanup failed for instance {identity.id}: {str(e)}")
            return 0

        if deleted:
            log.info(
                f"Retention deleted {deleted} confirmed scans for instance {identity.id}",
                extra={"retention": {"category": "confirmed_after_confirm", "tier": identity.tier.value,
                                     "count": deleted, "reason": "confirmed before grace period"}}
            )
        return deleted
