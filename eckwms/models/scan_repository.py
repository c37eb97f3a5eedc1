"""
Repository for scan database operations.

Every status transition and deletion here is a single set-based statement,
committed in its own transaction unless the caller passes ``commit=False``
to fold it into a larger unit of work. Concurrent pulls, confirms and
retention sweeps only ever see whole batches.
"""

import logging

from sqlalchemy import and_, func, or_, select, update

from eckwms.domain.identity import ScanStatus
from eckwms.models.base_repository import BaseRepository
from eckwms.models.instance import Instance
from eckwms.models.scan import Scan
from eckwms.utils.clock import utcnow

log = logging.getLogger(__name__)


class SqlAlchemyScanRepository(BaseRepository):
    """SQL Alchemy implementation of the scan record store."""

    model_class = Scan

    def _deliverable(self, redeliver_before=None):
        """Predicate for rows a pull may hand out."""
        buffered = Scan.status == ScanStatus.BUFFERED.value
        if redeliver_before is None:
            return buffered
        stale_delivery = and_(
            Scan.status == ScanStatus.DELIVERED.value,
            Scan.updated_at < redeliver_before
        )
        return or_(buffered, stale_delivery)

    def claim_for_delivery(self, instance_id, limit, min_priority=None, redeliver_before=None, now=None):
        """Select deliverable scans and mark them delivered in one transaction.

        Candidates are locked with SKIP LOCKED where the backend supports it,
        and the status flip is guarded by the same predicate, so a row is
        only returned to the caller whose UPDATE actually moved it.

        Args:
            instance_id: Owning instance
            limit: Maximum number of scans to claim
            min_priority: Only claim scans with priority >= this value
            redeliver_before: Re-deliver delivered scans last touched before this time
            now: Timestamp written to updated_at

        Returns:
            list: Claimed Scan objects, detached, ordered priority desc then oldest first
        """
        now = now or utcnow()
        deliverable = self._deliverable(redeliver_before)

        with self.transaction():
            query = Scan.query.filter(Scan.instance_id == instance_id, deliverable)
            if min_priority is not None:
                query = query.filter(Scan.priority >= min_priority)

            candidates = query.order_by(
                Scan.priority.desc(),
                Scan.created_at.asc()
            ).limit(limit).with_for_update(skip_locked=True).all()

            claimed_ids = set()
            if candidates:
                stmt = (
                    update(Scan)
                    .where(Scan.id.in_([scan.id for scan in candidates]), deliverable)
                    .values(status=ScanStatus.DELIVERED.value, updated_at=now)
                    .returning(Scan.id)
                    .execution_options(synchronize_session=False)
                )
                claimed_ids = set(self.db.session.execute(stmt).scalars().all())

                # Detach before commit so the loaded attributes are not expired
                for scan in candidates:
                    self.db.session.expunge(scan)

        if len(claimed_ids) != len(candidates):
            log.warning(
                f"Instance {instance_id}: {len(candidates) - len(claimed_ids)} scans "
                f"were claimed by a concurrent pull"
            )

        claimed = [scan for scan in candidates if scan.id in claimed_ids]
        for scan in claimed:
            scan.status = ScanStatus.DELIVERED.value
            scan.updated_at = now
        return claimed

    def confirm(self, instance_id, scan_ids, now=None):
        """Mark the caller's scans confirmed.

        Foreign, unknown and already confirmed IDs are ignored.

        Returns:
            int: Number of scans that moved to confirmed
        """
        now = now or utcnow()
        with self.transaction():
            return Scan.query.filter(
                Scan.id.in_(scan_ids),
                Scan.instance_id == instance_id,
                Scan.status != ScanStatus.CONFIRMED.value
            ).update(
                {Scan.status: ScanStatus.CONFIRMED.value, Scan.updated_at: now},
                synchronize_session=False
            )

    def _delete(self, *criteria, commit=True):
        with self.transaction(commit):
            return Scan.query.filter(*criteria).delete(synchronize_session=False)

    def _instances_in_tier(self, tier):
        return select(Instance.id).where(Instance.tier == tier)

    def delete_confirmed_for_tier(self, tier):
        """Delete every confirmed scan owned by an instance in ``tier``."""
        return self._delete(
            Scan.instance_id.in_(self._instances_in_tier(tier)),
            Scan.status == ScanStatus.CONFIRMED.value
        )

    def delete_stale_buffered_for_tier(self, tier, created_before):
        """Delete buffered scans in ``tier`` created before ``created_before``."""
        return self._delete(
            Scan.instance_id.in_(self._instances_in_tier(tier)),
            Scan.status == ScanStatus.BUFFERED.value,
            Scan.created_at < created_before
        )

    def delete_confirmed_for_instance(self, instance_id, updated_before):
        """Delete one instance's scans confirmed before ``updated_before``."""
        return self._delete(
            Scan.instance_id == instance_id,
            Scan.status == ScanStatus.CONFIRMED.value,
            Scan.updated_at < updated_before
        )

    def delete_for_instance(self, instance_id, status=None, commit=True):
        """Administrative purge of an instance's scans, optionally by status."""
        criteria = [Scan.instance_id == instance_id]
        if status:
            criteria.append(Scan.status == status)
        return self._delete(*criteria, commit=commit)

    def detach_from_instance(self, instance_id, commit=True):
        """Orphan an instance's scans so their history survives its deletion."""
        with self.transaction(commit):
            return Scan.query.filter(Scan.instance_id == instance_id).update(
                {Scan.instance_id: None},
                synchronize_session=False
            )

    def get_recent_for_instance(self, instance_id, limit=100):
        """Most recent scans of an instance, newest first."""
        return Scan.query.filter_by(
            instance_id=instance_id
        ).order_by(Scan.created_at.desc()).limit(limit).all()

    def count_by_status(self, instance_id):
        """Number of scans per status for an instance."""
        rows = self.db.session.query(
            Scan.status, func.count(Scan.id)
        ).filter(Scan.instance_id == instance_id).group_by(Scan.status).all()
        counts = {status.value: 0 for status in ScanStatus}
        counts.update({status: count for status, count in rows})
        return counts
