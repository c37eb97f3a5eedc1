from enum import Enum


class Tier(Enum):
    FREE = "free"
    PAID = "paid"


class ScanStatus(Enum):
    BUFFERED = "buffered"
    DELIVERED = "delivered"
    CONFIRMED = "confirmed"


class DeletePolicy(Enum):
    ORPHAN = "orphan"
    CASCADE = "cascade"


class InstanceIdentity:
    """Authenticated instance resolved from an API key."""

    def __init__(self, id, name, tier, is_public=False):
        self.id = id
        self.name = name
        self.tier = Tier(tier)
        self.is_public = is_public

    @classmethod
    def from_instance(cls, instance, public_api_key=None):
        return cls(
            id=instance.id,
            name=instance.name,
            tier=instance.tier,
            is_public=bool(public_api_key) and instance.api_key == public_api_key
        )

    @property
    def is_free_tier(self):
        return self.tier is Tier.FREE

    def __eq__(self, other):
        if not isinstance(other, InstanceIdentity):
            return NotImplemented
        return (self.id, self.tier, self.is_public) == (other.id, other.tier, other.is_public)

    def __hash__(self):
        return hash((self.id, self.tier, self.is_public))

    def __repr__(self):
        return f"<InstanceIdentity {self.id} tier={self.tier.value} public={self.is_public}>"
