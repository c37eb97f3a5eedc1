from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request

from eckwms.errors import ValidationError
from eckwms.extensions import limiter
from eckwms.services.container import container
from eckwms.services.instance_service import API_KEY_HEADER

api_bp = Blueprint("api", __name__)


def api_key_required(f):
    """Decorator resolving the X-API-Key header to the calling instance."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        instance_service = container().get('instance_service')
        g.instance = instance_service.authenticate(request.headers.get(API_KEY_HEADER))
        return f(*args, **kwargs)
    return decorated_function


def _json_body():
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


@api_bp.route("/API/SCANS", methods=["GET"])
def public_scans():
    """Recent scans of the public demo account."""
    public_instance = container().get('instance_service').get_public_instance()
    scans = container().get('scan_service').recent_scans(public_instance.id, limit=100)
    return jsonify(scans)


@api_bp.route("/API/SCAN", methods=["POST"])
@limiter.limit(lambda: current_app.config.get('SCAN_RATE_LIMIT', '1200 per minute'))
@api_key_required
def submit_scan():
    """Buffer a scan submitted by a device of the calling instance."""
    body = _json_body()

    result = container().get('scan_service').submit_scan(
        g.instance,
        body.get('payload'),
        device_id=body.get('deviceId'),
        priority=body.get('priority'),
        type=body.get('type')
    )

    return jsonify({
        "success": True,
        "scan_id": result["scan_id"],
        "checksum": result["checksum"],
        "timestamp": result["timestamp"]
    }), 201


@api_bp.route("/API/PULL", methods=["GET"])
@api_key_required
def pull_scans():
    """Pull buffered scans for the calling instance.

    Query params:
        limit: number of scans to pull (default 100, max 1000)
        priority_min: only pull scans with at least this priority
    """
    scans = container().get('scan_service').pull(
        g.instance,
        limit=request.args.get('limit'),
        min_priority=request.args.get('priority_min')
    )

    return jsonify({
        "success": True,
        "count": len(scans),
        "scans": scans
    })


@api_bp.route("/API/CONFIRM", methods=["POST"])
@api_key_required
def confirm_scans():
    """Confirm receipt of pulled scans. Expects {"scan_ids": [...]}."""
    body = _json_body()

    result = container().get('scan_service').confirm(g.instance, body.get('scan_ids'))

    return jsonify({
        "success": True,
        "confirmed_count": result["confirmed_count"]
    })
