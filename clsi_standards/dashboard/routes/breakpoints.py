"""Breakpoint standard and interpretation endpoints."""

from flask import Blueprint, current_app, jsonify, request

from .auth import check_api_key, missing_fields, missing_response

breakpoints_bp = Blueprint("breakpoints", __name__)


def _service():
    return current_app.services.breakpoints


@breakpoints_bp.route("/breakpoints", methods=["GET"])
@check_api_key
def list_breakpoints():
    """List standards, filtered by microorganism_id, drug_id, year, method."""
    standards = _service().find_breakpoints(
        microorganism_id=request.args.get("microorganism_id"),
        drug_id=request.args.get("drug_id"),
        year=request.args.get("year", type=int),
        method=request.args.get("method"),
        include_inactive=request.args.get("include_inactive", "false").lower() == "true",
    )
    return jsonify({
        "success": True,
        "count": len(standards),
        "standards": [s.to_dict() for s in standards],
    })


@breakpoints_bp.route("/breakpoints", methods=["POST"])
@check_api_key
def create_breakpoint():
    data = request.get_json(silent=True) or {}

    missing = missing_fields(data, "microorganism_id", "drug_id", "year", "method")
    if missing:
        return missing_response(missing)

    standard = _service().create_breakpoint_standard(
        microorganism_id=data["microorganism_id"],
        drug_id=data["drug_id"],
        year=int(data["year"]),
        method=data["method"],
        breakpoints=data.get("breakpoints"),
        notes=data.get("notes"),
        source_document=data.get("source_document"),
    )
    return jsonify({"success": True, "standard": standard.to_dict()}), 201


@breakpoints_bp.route("/breakpoints/latest", methods=["GET"])
@check_api_key
def latest_breakpoint():
    missing = missing_fields(request.args, "microorganism_id", "drug_id")
    if missing:
        return missing_response(missing)

    standard = _service().get_latest_breakpoint(
        request.args["microorganism_id"],
        request.args["drug_id"],
        request.args.get("method"),
    )
    if standard is None:
        return jsonify({"success": False, "error": "No breakpoint standard found"}), 404
    return jsonify({"success": True, "standard": standard.to_dict()})


@breakpoints_bp.route("/breakpoints/years", methods=["GET"])
@check_api_key
def available_years():
    return jsonify({"success": True, "years": _service().get_available_years()})


@breakpoints_bp.route("/breakpoints/compare", methods=["GET"])
@check_api_key
def compare_versions():
    """Year-over-year changes for a microorganism/drug pair."""
    missing = missing_fields(request.args, "microorganism_id", "drug_id")
    if missing:
        return missing_response(missing)

    comparisons = _service().compare_breakpoint_versions(
        request.args["microorganism_id"],
        request.args["drug_id"],
        request.args.get("method"),
    )
    return jsonify({
        "success": True,
        "comparisons": [c.to_dict() for c in comparisons],
    })


@breakpoints_bp.route("/breakpoints/<standard_id>", methods=["GET"])
@check_api_key
def get_breakpoint(standard_id):
    standard = _service().get_breakpoint_standard(standard_id)
    if standard is None:
        return jsonify({"success": False, "error": "Breakpoint standard not found"}), 404
    return jsonify({"success": True, "standard": standard.to_dict()})


@breakpoints_bp.route("/breakpoints/<standard_id>", methods=["PATCH"])
@check_api_key
def update_breakpoint(standard_id):
    data = request.get_json(silent=True) or {}

    standard = _service().update_breakpoint_standard(standard_id, **data)
    if standard is None:
        return jsonify({"success": False, "error": "Breakpoint standard not found"}), 404
    return jsonify({"success": True, "standard": standard.to_dict()})


@breakpoints_bp.route("/interpret", methods=["POST"])
@check_api_key
def interpret_value():
    """Interpret a measurement and run expert rules over it."""
    data = request.get_json(silent=True) or {}

    missing = missing_fields(data, "microorganism_id", "drug_id", "test_value", "method")
    if missing:
        return missing_response(missing)

    outcome = current_app.services.interpretation.interpret_and_validate(
        data["microorganism_id"],
        data["drug_id"],
        data["test_value"],
        data["method"],
        year=int(data["year"]) if data.get("year") is not None else None,
        additional_data=data.get("additional_data"),
    )
    if outcome is None:
        return jsonify({"success": False, "error": "No breakpoint standard found"}), 404

    return jsonify({"success": True, **outcome.to_dict()})
