"""Service for the instance registry and credential lookup."""

import logging
import secrets

from eckwms.domain.identity import DeletePolicy, InstanceIdentity, Tier
from eckwms.errors import AuthenticationError, ResourceNotFoundError, ValidationError
from eckwms.extensions import db
from eckwms.models.instance import INSTANCE_ID_MAX_LENGTH, Instance
from eckwms.utils.clock import isoformat_utc
from eckwms.utils.error_handler import store_boundary

log = logging.getLogger(__name__)

PUBLIC_INSTANCE_NAME = 'Public Demo Account'
API_KEY_HEADER = 'X-API-Key'


class InstanceService:
    """Registers instances and resolves their credentials."""

    def __init__(self, instance_repository, scan_repository, config, db_instance=None):
        """Initialize InstanceService.

        Args:
            instance_repository: Repository for instances
            scan_repository: Repository for scans, used when deleting an instance
            config: Application config mapping
            db_instance: SQLAlchemy database instance
        """
        self.instance_repository = instance_repository
        self.scan_repository = scan_repository
        self.config = config
        self.db = db_instance or db

    @property
    def public_api_key(self):
        return self.config.get('PUBLIC_API_KEY')

    @store_boundary("authentication")
    def authenticate(self, api_key):
        """Resolve an API key to the calling instance.

        Raises:
            AuthenticationError: when the key is missing or unknown
        """
        if not api_key:
            raise AuthenticationError.missing(API_KEY_HEADER)

        instance = self.instance_repository.get_by_api_key(api_key)
        if not instance:
            log.warning("Rejected request with unknown API key")
            raise AuthenticationError.invalid()

        return InstanceIdentity.from_instance(instance, self.public_api_key)

    @store_boundary("instance registration")
    def register_instance(self, instance_id, public_ip=None, server_public_key=None,
                          local_ips=None, traceroute_to_global=None):
        """Find or create an instance and refresh its reachability metadata.

        Returns:
            tuple: (Instance, created)
        """
        if not instance_id or not isinstance(instance_id, str):
            raise ValidationError("instanceId is required")
        if len(instance_id) > INSTANCE_ID_MAX_LENGTH:
            raise ValidationError(f"instanceId must be at most {INSTANCE_ID_MAX_LENGTH} characters")

        instance = self.instance_repository.get_by_id(instance_id)
        created = instance is None
        if created:
            instance = Instance(
                id=instance_id,
                name=f"Instance {instance_id[:8]}",
                server_url=f"http://{public_ip or 'unknown'}:{self.config.get('LOCAL_SERVER_PORT', 3000)}",
                api_key=f"key_{instance_id[:16]}",
                tier=Tier.FREE.value
            )

        instance.public_ip = public_ip
        instance.local_ips = list(local_ips or [])
        instance.traceroute_to_global = traceroute_to_global
        instance.server_public_key = server_public_key
        instance.touch()
        self.instance_repository.save(instance)

        log.info(f"Instance {'registered' if created else 'updated'}: {instance.id} from {public_ip}")
        return instance, created

    @store_boundary("instance creation")
    def create_instance(self, name, tier=Tier.FREE.value, server_url=None, api_key=None):
        """Create an instance with a freshly generated API key."""
        if not name:
            raise ValidationError("name is required")
        tier = self._validate_tier(tier)
        if self.instance_repository.get_by_name(name):
            raise ValidationError(f"An instance named '{name}' already exists")

        instance = Instance(
            name=name,
            server_url=server_url,
            api_key=api_key or secrets.token_urlsafe(32),
            tier=tier
        )
        self.instance_repository.save(instance)
        log.info(f"Created {tier} instance {instance.id} ({name})")
        return instance

    @store_boundary("instance lookup")
    def get_instance(self, instance_id):
        instance = self.instance_repository.get_by_id(instance_id)
        if not instance:
            raise ResourceNotFoundError(f"No instance registered with ID: {instance_id}")
        return instance

    def get_connection_candidates(self, instance):
        """Ordered list of URLs a client can try to reach the instance."""
        port = self.config.get('LOCAL_SERVER_PORT', 3000)
        candidates = []

        for ip in instance.local_ips or []:
            candidates.append({
                "url": f"http://{ip}:{port}",
                "type": "LOCAL_LAN",
                "priority": 1,
                "reason": "Reported by server as local IP"
            })

        if instance.public_ip:
            candidates.append({
                "url": f"http://{instance.public_ip}:{port}",
                "type": "PUBLIC_IP",
                "priority": 2,
                "reason": "Public IP of the instance"
            })

        # Always present so clients have a fallback
        candidates.append({
            "url": f"{self.config.get('GLOBAL_SERVER_URL', '').rstrip('/')}/ECK/proxy",
            "type": "GLOBAL_PROXY",
            "priority": 3,
            "reason": "Global proxy - guaranteed fallback"
        })
        return candidates

    def get_instance_info(self, instance_id):
        instance = self.get_instance(instance_id)
        return {
            "instanceId": instance.id,
            "name": instance.name,
            "tier": instance.tier,
            "serverPublicKey": instance.server_public_key,
            "connectionCandidates": self.get_connection_candidates(instance),
            "lastSeen": isoformat_utc(instance.last_seen)
        }

    @store_boundary("tier change")
    def set_tier(self, instance_id, tier):
        tier = self._validate_tier(tier)
        instance = self.get_instance(instance_id)
        instance.tier = tier
        self.instance_repository.save(instance)
        log.info(f"Instance {instance.id} moved to {tier} tier")
        return instance

    @store_boundary("instance deletion")
    def delete_instance(self, instance_id, policy=None):
        """Delete an instance, orphaning or cascading its scans.

        Args:
            instance_id: Instance to delete
            policy: ``orphan`` or ``cascade``; defaults to INSTANCE_DELETE_POLICY

        Returns:
            dict: Applied policy and number of scans affected
        """
        policy = policy or self.config.get('INSTANCE_DELETE_POLICY', DeletePolicy.ORPHAN.value)
        try:
            policy = DeletePolicy(policy)
        except ValueError:
            raise ValidationError(f"Unknown delete policy: {policy}")

        instance = self.get_instance(instance_id)

        # Scan cascade/detach and the instance row go in one transaction
        with self.instance_repository.transaction():
            if policy is DeletePolicy.CASCADE:
                affected = self.scan_repository.delete_for_instance(instance.id, commit=False)
            else:
                affected = self.scan_repository.detach_from_instance(instance.id, commit=False)
            self.instance_repository.delete(instance, commit=False)
        log.info(f"Deleted instance {instance_id} ({policy.value}): {affected} scans affected")
        return {"policy": policy.value, "scans_affected": affected}

    @store_boundary("public instance seeding")
    def seed_public_instance(self):
        """Ensure the public demo instance exists with the configured key.

        Returns:
            tuple: (Instance, created)
        """
        instance = self.instance_repository.get_by_name(PUBLIC_INSTANCE_NAME)
        if instance:
            if instance.api_key != self.public_api_key:
                instance.api_key = self.public_api_key
                self.instance_repository.save(instance)
                log.info("Updated Public Demo Account with correct API key")
            return instance, False

        instance = Instance(
            name=PUBLIC_INSTANCE_NAME,
            server_url='https://pda.repair/eckwms/api/scan',
            api_key=self.public_api_key,
            tier=Tier.FREE.value
        )
        self.instance_repository.save(instance)
        log.info("Public Demo Account created")
        return instance, True

    @store_boundary("public instance lookup")
    def get_public_instance(self):
        instance = self.instance_repository.get_by_api_key(self.public_api_key)
        if not instance:
            raise ResourceNotFoundError("Public demo instance not found. Run flask seed-public-instance.")
        return instance

    @staticmethod
    def _validate_tier(tier):
        try:
            return Tier(tier).value
        except ValueError:
            raise ValidationError(f"Unknown tier: {tier}")
