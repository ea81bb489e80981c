"""API key check shared by the API blueprints."""

from functools import wraps

from flask import current_app, jsonify, request


def check_api_key(f):
    """Decorator to check API key for protected endpoints."""
    @wraps(f)
    def decorated(*args, **kwargs):
        api_key = current_app.config.get("CLSI_API_KEY")

        # If no API key configured, allow all requests (dev mode)
        if not api_key:
            return f(*args, **kwargs)

        # Check key from query param or header
        provided_key = request.args.get("key") or request.headers.get("X-API-Key")

        if provided_key != api_key:
            return jsonify({"success": False, "error": "Invalid or missing API key"}), 401

        return f(*args, **kwargs)

    return decorated


def missing_fields(data, *names) -> list[str]:
    """Names absent or empty in a JSON body or query mapping."""
    return [name for name in names if data.get(name) in (None, "")]


def missing_response(missing: list[str]):
    return jsonify({
        "success": False,
        "error": f"{', '.join(missing)} required",
    }), 400
