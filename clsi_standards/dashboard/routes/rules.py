"""Expert rule endpoints."""

from flask import Blueprint, current_app, jsonify, request

from ...breakpoints.interpreter import check_measurement
from ...models import SensitivityResult, TestMethod
from ...rules.schemas import RuleEvaluationContext
from .auth import check_api_key, missing_fields, missing_response

rules_bp = Blueprint("expert_rules", __name__)

RULE_FIELDS = (
    "name", "description", "rule_type", "condition", "action", "priority",
    "year", "microorganism_id", "drug_id", "source_reference", "notes",
)


def _service():
    return current_app.services.rules


@rules_bp.route("/expert-rules", methods=["GET"])
@check_api_key
def list_rules():
    rules = _service().get_rules_by_type(
        request.args.get("rule_type"),
        request.args.get("year", type=int),
    )
    return jsonify({
        "success": True,
        "count": len(rules),
        "rules": [r.to_dict() for r in rules],
    })


@rules_bp.route("/expert-rules", methods=["POST"])
@check_api_key
def create_rule():
    data = request.get_json(silent=True) or {}

    missing = missing_fields(data, "name", "rule_type", "condition", "action")
    if missing:
        return missing_response(missing)

    fields = {key: data[key] for key in RULE_FIELDS if key in data}
    fields.setdefault("description", "")

    rule = _service().create_expert_rule(**fields)
    return jsonify({"success": True, "rule": rule.to_dict()}), 201


@rules_bp.route("/expert-rules/statistics", methods=["GET"])
@check_api_key
def rule_statistics():
    return jsonify({"success": True, **_service().get_rule_statistics()})


@rules_bp.route("/expert-rules/validate", methods=["POST"])
@check_api_key
def validate_result():
    """Run the rule set over an already interpreted result."""
    data = request.get_json(silent=True) or {}

    missing = missing_fields(
        data, "microorganism_id", "drug_id", "test_value", "test_method", "interpreted_result"
    )
    if missing:
        return missing_response(missing)

    context = RuleEvaluationContext(
        microorganism_id=data["microorganism_id"],
        drug_id=data["drug_id"],
        test_value=check_measurement(data["test_value"]),
        test_method=TestMethod(data["test_method"]),
        interpreted_result=SensitivityResult.parse(data["interpreted_result"]),
        year=int(data["year"]) if data.get("year") is not None else None,
        additional_data=data.get("additional_data") or {},
    )
    validation = current_app.services.engine.validate_result(context)
    return jsonify({"success": True, **validation.to_dict()})


@rules_bp.route("/expert-rules/<rule_id>", methods=["GET"])
@check_api_key
def get_rule(rule_id):
    rule = _service().get_expert_rule_by_id(rule_id)
    if rule is None:
        return jsonify({"success": False, "error": "Expert rule not found"}), 404
    return jsonify({"success": True, "rule": rule.to_dict()})


@rules_bp.route("/expert-rules/<rule_id>", methods=["PATCH"])
@check_api_key
def update_rule(rule_id):
    data = request.get_json(silent=True) or {}

    rule = _service().update_expert_rule(rule_id, **data)
    if rule is None:
        return jsonify({"success": False, "error": "Expert rule not found"}), 404
    return jsonify({"success": True, "rule": rule.to_dict()})


@rules_bp.route("/expert-rules/<rule_id>", methods=["DELETE"])
@check_api_key
def retire_rule(rule_id):
    """Retire the rule. It stays stored for audit but never fires again."""
    rule = _service().retire_expert_rule(rule_id)
    if rule is None:
        return jsonify({"success": False, "error": "Expert rule not found"}), 404
    return jsonify({"success": True, "rule": rule.to_dict()})
