"""
Plan API Endpoints

A student's GoodLife plan and its progress summary.
"""

from flask import Blueprint, request, jsonify, current_app

from . import get_store
from ..domain.errors import PersistenceError, SchemaError
from ..domain.progress import build_progress_report
from ..services.async_helper import run_async

plans_api = Blueprint('plans_api', __name__, url_prefix='/api')

INVALID = "Invalid plan data"
NOT_FOUND = "Plan not found"


@plans_api.route('/plans', methods=['GET'])
def list_plans():
    plans = run_async(get_store().plans.list_all())
    return jsonify([plan.to_dict() for plan in plans]), 200


@plans_api.route('/plans/<int:plan_id>', methods=['GET'])
def get_plan(plan_id):
    plan = run_async(get_store().plans.get_by_id(plan_id))
    if plan is None:
        return jsonify({'message': NOT_FOUND}), 404
    return jsonify(plan.to_dict()), 200


@plans_api.route('/students/<int:student_id>/plan', methods=['GET'])
def get_student_plan(student_id):
    plan = run_async(get_store().plans.get_by_student(student_id))
    if plan is None:
        return jsonify({'message': NOT_FOUND}), 404
    return jsonify(plan.to_dict()), 200


@plans_api.route('/plans', methods=['POST'])
def create_plan():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'message': INVALID, 'error': 'JSON object required'}), 400
    try:
        plan = run_async(get_store().plans.create(data))
    except SchemaError as e:
        current_app.logger.warning(f"Rejected plan: {e}")
        return jsonify({'message': INVALID, 'error': str(e)}), 400
    return jsonify(plan.to_dict()), 201


@plans_api.route('/plans/<int:plan_id>', methods=['PATCH'])
def update_plan(plan_id):
    """Partial update of ``progress`` and ``status``."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'message': INVALID, 'error': 'JSON object required'}), 400
    try:
        plan = run_async(get_store().plans.update(plan_id, data))
    except SchemaError as e:
        current_app.logger.warning(f"Rejected update of plan {plan_id}: {e}")
        return jsonify({'message': INVALID, 'error': str(e)}), 400
    except PersistenceError as e:
        if e.status_code == 404:
            return jsonify({'message': NOT_FOUND}), 404
        current_app.logger.error(f"Error updating plan {plan_id}: {e}")
        return jsonify({'message': str(e)}), e.status_code or 500
    return jsonify(plan.to_dict()), 200


@plans_api.route('/plans/<int:plan_id>/progress', methods=['GET'])
def get_plan_progress(plan_id):
    """Plan-level and per-domain progress derived from the stored domain plans."""
    store = get_store()
    plan = run_async(store.plans.get_by_id(plan_id))
    if plan is None:
        return jsonify({'message': NOT_FOUND}), 404
    domain_plans = run_async(store.domain_plans.list_by_plan(plan_id))
    report = build_progress_report(domain_plans)
    return jsonify(dict(report.as_dict(), planId=plan_id, storedProgress=plan.progress)), 200
