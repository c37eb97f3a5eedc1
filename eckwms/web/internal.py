"""Internal endpoints used by site servers to register and be located."""

import hmac
import logging
from functools import wraps

from flask import Blueprint, current_app, jsonify, request

from eckwms.errors import AuthenticationError, ConfigurationError, ValidationError
from eckwms.services.container import container

internal_bp = Blueprint("internal", __name__)
log = logging.getLogger(__name__)

INTERNAL_KEY_HEADER = 'X-Internal-Api-Key'


def internal_api_key_required(f):
    """Decorator checking the shared internal API key."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get('INTERNAL_API_KEY')
        if not expected:
            log.warning("INTERNAL_API_KEY not configured")
            raise ConfigurationError("INTERNAL_API_KEY is not set")

        provided = request.headers.get(INTERNAL_KEY_HEADER)
        if not provided:
            raise AuthenticationError.missing(INTERNAL_KEY_HEADER)
        if not hmac.compare_digest(provided, expected):
            log.warning(f"Unauthorized internal API access attempt from {request.remote_addr}")
            raise AuthenticationError("Invalid internal API key")

        return f(*args, **kwargs)
    return decorated_function


@internal_bp.route("/api/internal/register-instance", methods=["POST"])
@internal_api_key_required
def register_instance():
    """Register a new instance or refresh an existing one's metadata."""
    body = request.get_json(silent=True) or {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    local_ips = body.get('localIps') or []
    if not isinstance(local_ips, list):
        raise ValidationError("localIps must be a list")

    public_ip = request.headers.get('X-Forwarded-For', request.remote_addr or 'unknown').split(',')[0].strip()

    instance, created = container().get('instance_service').register_instance(
        body.get('instanceId'),
        public_ip=public_ip,
        server_public_key=body.get('serverPublicKey'),
        local_ips=local_ips,
        traceroute_to_global=body.get('tracerouteToGlobal')
    )

    return jsonify({
        "success": True,
        "message": f"Instance {'registered' if created else 'updated'} successfully",
        "instanceId": instance.id,
        "detectedIp": public_ip
    })


@internal_bp.route("/api/internal/get-instance-info/<instance_id>", methods=["GET"])
@internal_api_key_required
def get_instance_info(instance_id):
    """Instance details with the ordered list of connection candidates."""
    return jsonify(container().get('instance_service').get_instance_info(instance_id))
