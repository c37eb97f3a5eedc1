"""Service for buffering scans and handing them back to their instance."""

import json
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from eckwms.domain.identity import InstanceIdentity, ScanStatus
from eckwms.errors import ValidationError
from eckwms.extensions import db
from eckwms.models.scan import (
    DEVICE_ID_MAX_LENGTH,
    PRIORITY_MAX,
    PRIORITY_MIN,
    TYPE_MAX_LENGTH,
    Scan,
)
from eckwms.utils.checksum import compute_checksum
from eckwms.utils.clock import isoformat_utc, utcnow
from eckwms.utils.error_handler import store_boundary

log = logging.getLogger(__name__)


def serialize_payload(payload: Any) -> str:
    """Turn a submitted payload into the text that is stored and checksummed.

    Strings are kept verbatim; structured payloads become compact, key-sorted
    JSON so the same structure always yields the same checksum.
    """
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, separators=(',', ':'), sort_keys=True)


def _coerce_int(value, name, allow_none=True):
    if value is None or value == '':
        if allow_none:
            return None
        raise ValidationError(f"{name} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    try:
        value = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{name} must be an integer")
    if not PRIORITY_MIN <= value <= PRIORITY_MAX:
        raise ValidationError(f"{name} must be between {PRIORITY_MIN} and {PRIORITY_MAX}")
    return value


def _coerce_str(value, name, max_length):
    """Optional short text field: None, or a string that fits its column."""
    if value is None or value == '':
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    if len(value) > max_length:
        raise ValidationError(f"{name} must be at most {max_length} characters")
    return value


class ScanService:
    """Buffering gateway plus the pull/confirm protocol."""

    def __init__(self, scan_repository, config, retention_service=None, db_instance=None, clock=utcnow):
        """Initialize ScanService.

        Args:
            scan_repository: Repository for scans
            config: Application config mapping
            retention_service: Applies tier policy after a confirm (optional)
            db_instance: SQLAlchemy database instance
            clock: Callable returning the current naive UTC time
        """
        self.scan_repository = scan_repository
        self.config = config
        self.retention_service = retention_service
        self.db = db_instance or db
        self.clock = clock

    @store_boundary("submit")
    def submit_scan(self, identity: InstanceIdentity, payload: Any, device_id: Optional[str] = None,
                    priority: Optional[int] = None, type: Optional[str] = None) -> Dict[str, Any]:
        """Buffer one scan for ``identity``.

        Returns:
            dict: scan_id, checksum and timestamp of the stored record
        """
        if payload is None or payload == '' or payload == {} or payload == []:
            raise ValidationError("Payload is required")

        priority = _coerce_int(priority, "priority") or 0
        device_id = _coerce_str(device_id, "deviceId", DEVICE_ID_MAX_LENGTH)
        type = _coerce_str(type, "type", TYPE_MAX_LENGTH)
        stored_payload = serialize_payload(payload)
        checksum = compute_checksum(stored_payload)

        # The public demo credential never keeps device identifiers
        stored_device_id = None if identity.is_public else device_id

        now = self.clock()
        scan = Scan(
            payload=stored_payload,
            checksum=checksum,
            instance_id=identity.id,
            device_id=stored_device_id,
            priority=priority,
            type=type,
            status=ScanStatus.BUFFERED.value,
            created_at=now,
            updated_at=now
        )
        self.scan_repository.save(scan)

        log.info(
            f"Scan buffered for instance {identity.name}: type={scan.type!r} priority={priority}"
            f"{' [PUBLIC MODE - ANONYMIZED]' if identity.is_public else ''}"
        )
        return {
            "scan_id": scan.id,
            "checksum": checksum,
            "timestamp": isoformat_utc(now)
        }

    def _resolve_limit(self, limit):
        default = self.config.get('PULL_DEFAULT_LIMIT', 100)
        cap = self.config.get('PULL_MAX_LIMIT', 1000)
        try:
            limit = int(limit) if limit is not None else default
        except (TypeError, ValueError, OverflowError):
            limit = default
        if limit <= 0:
            limit = default
        return min(limit, cap)

    def _redeliver_before(self, now):
        minutes = self.config.get('SCAN_REDELIVERY_TIMEOUT_MINUTES', 0)
        if not minutes or minutes <= 0:
            return None
        return now - timedelta(minutes=minutes)

    @store_boundary("pull")
    def pull(self, identity: InstanceIdentity, limit: Optional[int] = None,
             min_priority: Optional[int] = None) -> List[Dict[str, Any]]:
        """Hand the instance its buffered scans and mark them delivered.

        Scans come back highest priority first, oldest first within a
        priority. Delivered scans that were never confirmed become eligible
        again once SCAN_REDELIVERY_TIMEOUT_MINUTES have passed.
        """
        limit = self._resolve_limit(limit)
        min_priority = _coerce_int(min_priority, "priority_min")
        now = self.clock()

        scans = self.scan_repository.claim_for_delivery(
            identity.id,
            limit,
            min_priority=min_priority,
            redeliver_before=self._redeliver_before(now),
            now=now
        )

        log.info(f"Pulled {len(scans)} scans for instance {identity.name}")
        return [scan.to_pull_dict() for scan in scans]

    @store_boundary("confirm")
    def confirm(self, identity: InstanceIdentity, scan_ids: List[str]) -> Dict[str, int]:
        """Mark pulled scans as confirmed.

        Unknown, foreign and already confirmed IDs are silently skipped.
        """
        if not isinstance(scan_ids, list) or not scan_ids:
            raise ValidationError("scan_ids array is required")

        ids = [str(scan_id) for scan_id in scan_ids if scan_id is not None and not isinstance(scan_id, (dict, list))]
        confirmed_count = self.scan_repository.confirm(identity.id, ids, now=self.clock()) if ids else 0

        log.info(f"Confirmed {confirmed_count} scans for instance {identity.name}")

        if self.retention_service is not None:
            self.retention_service.cleanup_after_confirm(identity)

        return {"confirmed_count": confirmed_count}

    @store_boundary("public feed")
    def recent_scans(self, instance_id, limit=100):
        """Latest scans of an instance for the public demo feed."""
        return [scan.to_public_dict() for scan in self.scan_repository.get_recent_for_instance(instance_id, limit)]

    @store_boundary("purge")
    def purge_instance_scans(self, instance_id, status=None):
        """Administrative delete of an instance's scans, optionally only one status."""
        count = self.scan_repository.delete_for_instance(instance_id, status=status)
        log.info(f"Purged {count} scans of instance {instance_id} (status={status or 'any'})")
        return count

    @store_boundary("scan statistics")
    def status_counts(self, instance_id):
        return self.scan_repository.count_by_status(instance_id)
