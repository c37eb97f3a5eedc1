import uuid

from eckwms.domain.identity import Tier
from eckwms.extensions import db
from eckwms.utils.clock import utcnow

INSTANCE_ID_MAX_LENGTH = 36


class Instance(db.Model):
    """A registered site server that exchanges scans with the global store."""

    __tablename__ = "eckwms_instances"

    id = db.Column(db.String(INSTANCE_ID_MAX_LENGTH), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(255), unique=True, nullable=False)
    server_url = db.Column(db.String(255), nullable=True)
    api_key = db.Column(db.String(255), unique=True, nullable=False, index=True)
    tier = db.Column(db.String(10), nullable=False, default=Tier.FREE.value)

    # Reachability metadata reported on registration/heartbeat
    public_ip = db.Column(db.String(64), nullable=True)
    local_ips = db.Column(db.JSON, nullable=True, default=list)
    traceroute_to_global = db.Column(db.Text, nullable=True)
    server_public_key = db.Column(db.Text, nullable=True)
    last_seen = db.Column(db.DateTime, nullable=True, default=utcnow)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f'<Instance {self.id}: {self.name} ({self.tier})>'

    @property
    def is_free_tier(self):
        return self.tier == Tier.FREE.value

    def touch(self):
        """Record a heartbeat."""
        self.last_seen = utcnow()
