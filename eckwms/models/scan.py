"""
Scan model for buffered scan records.

A scan is submitted by a site instance, buffered here, pulled back by the
instance (delivered) and finally confirmed, after which the retention sweep
may delete it.
"""

import uuid

from eckwms.domain.identity import ScanStatus
from eckwms.extensions import db
from eckwms.utils.clock import isoformat_utc, utcnow

DEVICE_ID_MAX_LENGTH = 255
TYPE_MAX_LENGTH = 64

# Bounds of the 32-bit priority column
PRIORITY_MIN = -2 ** 31
PRIORITY_MAX = 2 ** 31 - 1


class Scan(db.Model):
    """Model for one buffered scan.

    Attributes:
        id: UUID primary key
        payload: Opaque scan content as stored text
        checksum: CRC-32 of the stored payload, 8 hex chars
        instance_id: Owning instance, NULL once orphaned
        device_id: Originating device, never stored for the public credential
        priority: Higher values are pulled first
        type: Free-form category tag
        status: buffered, delivered or confirmed
    """

    __tablename__ = "scans"
    __table_args__ = (
        db.Index('ix_scans_instance_status', 'instance_id', 'status'),
        db.Index('ix_scans_instance_created', 'instance_id', 'created_at'),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    payload = db.Column(db.Text, nullable=False)
    checksum = db.Column(db.String(8), nullable=False)
    instance_id = db.Column(
        db.String(36),
        db.ForeignKey('eckwms_instances.id', ondelete='SET NULL'),
        nullable=True
    )
    device_id = db.Column(db.String(DEVICE_ID_MAX_LENGTH), nullable=True)
    priority = db.Column(db.Integer, nullable=False, default=0)
    type = db.Column(db.String(TYPE_MAX_LENGTH), nullable=True)
    status = db.Column(db.String(20), nullable=False, default=ScanStatus.BUFFERED.value)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    instance = db.relationship('Instance', backref=db.backref('scans', lazy='dynamic', passive_deletes=True))

    def __repr__(self):
        return f'<Scan {self.id} - {self.status}>'

    def to_pull_dict(self):
        """Shape returned to a pulling instance."""
        return {
            "scan_id": self.id,
            "payload": self.payload,
            "checksum": self.checksum,
            "deviceId": self.device_id,
            "priority": self.priority,
            "type": self.type,
            "created_at": isoformat_utc(self.created_at)
        }

    def to_public_dict(self):
        """Shape exposed on the public demo feed."""
        return {
            "id": self.id,
            "payload": self.payload,
            "type": self.type,
            "priority": self.priority,
            "createdAt": isoformat_utc(self.created_at)
        }
