"""Lab result endpoints."""

from flask import Blueprint, current_app, jsonify, request

from .auth import check_api_key, missing_fields, missing_response

lab_results_bp = Blueprint("lab_results", __name__)

LAB_RESULT_FIELDS = (
    "sample_id", "microorganism_id", "drug_id", "test_method", "raw_result",
    "technician", "test_date", "instrument_id", "comments", "year",
)


def _service():
    return current_app.services.lab_results


def _reviewer(data) -> str | None:
    return data.get("reviewed_by") or request.headers.get("X-User")


@lab_results_bp.route("/lab-results", methods=["GET"])
@check_api_key
def list_lab_results():
    status = request.args.get("status")
    if status:
        results = _service().get_lab_results_by_status(status)
    else:
        results = _service().get_all_lab_results()
    return jsonify({
        "success": True,
        "count": len(results),
        "lab_results": [r.to_dict() for r in results],
    })


@lab_results_bp.route("/lab-results", methods=["POST"])
@check_api_key
def create_lab_result():
    """Store a result and auto-validate it against the current standards."""
    data = request.get_json(silent=True) or {}

    lab_result = _service().create_lab_result(
        **{key: data[key] for key in LAB_RESULT_FIELDS if key in data},
    )
    return jsonify({"success": True, "lab_result": lab_result.to_dict()}), 201


@lab_results_bp.route("/lab-results/statistics", methods=["GET"])
@check_api_key
def lab_result_statistics():
    return jsonify({"success": True, **_service().get_statistics()})


@lab_results_bp.route("/lab-results/bulk-validate", methods=["POST"])
@check_api_key
def bulk_validate():
    data = request.get_json(silent=True) or {}

    reviewed_by = _reviewer(data)
    if not reviewed_by or not data.get("result_ids"):
        return missing_response(["result_ids", "reviewed_by"])

    outcome = _service().bulk_validate_results(data["result_ids"], reviewed_by)
    return jsonify({"success": outcome["failed"] == 0, **outcome})


@lab_results_bp.route("/lab-results/<result_id>", methods=["GET"])
@check_api_key
def get_lab_result(result_id):
    lab_result = _service().get_lab_result(result_id)
    return jsonify({"success": True, "lab_result": lab_result.to_dict()})


@lab_results_bp.route("/lab-results/<result_id>/validate", methods=["POST"])
@check_api_key
def validate_lab_result(result_id):
    """Reviewer sign-off."""
    data = request.get_json(silent=True) or {}

    reviewed_by = _reviewer(data)
    if not reviewed_by:
        return missing_response(["reviewed_by"])

    lab_result = _service().validate_lab_result(
        result_id, reviewed_by, comments=data.get("comments")
    )
    return jsonify({"success": True, "lab_result": lab_result.to_dict()})


@lab_results_bp.route("/lab-results/<result_id>/reject", methods=["POST"])
@check_api_key
def reject_lab_result(result_id):
    data = request.get_json(silent=True) or {}

    reviewed_by = _reviewer(data)
    missing = missing_fields(data, "reason")
    if not reviewed_by:
        missing.insert(0, "reviewed_by")
    if missing:
        return missing_response(missing)

    lab_result = _service().reject_lab_result(result_id, reviewed_by, data["reason"])
    return jsonify({"success": True, "lab_result": lab_result.to_dict()})
