"""
Domain Plan API Endpoints

Per-domain plans with their embedded goals. Goals have no endpoint of their own:
they are created, edited, reordered and moved by sending the owning plan's whole
``goals`` array.
"""

from flask import Blueprint, request, jsonify, current_app

from . import get_store
from ..domain.errors import PersistenceError, SchemaError
from ..services.async_helper import run_async

domain_plans_api = Blueprint('domain_plans_api', __name__, url_prefix='/api')

INVALID = "Invalid domain plan data"
NOT_FOUND = "Domain plan not found"


@domain_plans_api.route('/plans/<int:plan_id>/domains', methods=['GET'])
def list_domain_plans(plan_id):
    """Every domain plan belonging to a plan."""
    domain_plans = run_async(get_store().domain_plans.list_by_plan(plan_id))
    return jsonify([dp.to_dict() for dp in domain_plans]), 200


@domain_plans_api.route('/domain-plans/<int:domain_plan_id>', methods=['GET'])
def get_domain_plan(domain_plan_id):
    domain_plan = run_async(get_store().domain_plans.get_by_id(domain_plan_id))
    if domain_plan is None:
        return jsonify({'message': NOT_FOUND}), 404
    return jsonify(domain_plan.to_dict()), 200


@domain_plans_api.route('/domain-plans', methods=['POST'])
def create_domain_plan():
    """Create a domain plan; an omitted ``visionAge`` takes the configured default."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'message': INVALID, 'error': 'JSON object required'}), 400
    if data.get('visionAge') is None:
        data['visionAge'] = current_app.config.get('DEFAULT_VISION_AGE', 30)

    try:
        domain_plan = run_async(get_store().domain_plans.create(data))
    except SchemaError as e:
        current_app.logger.warning(f"Rejected domain plan: {e}")
        return jsonify({'message': INVALID, 'error': str(e)}), 400
    except PersistenceError as e:
        current_app.logger.warning(f"Domain plan not created: {e}")
        return jsonify({'message': str(e)}), e.status_code or 500
    return jsonify(domain_plan.to_dict()), 201


@domain_plans_api.route('/domain-plans/<int:domain_plan_id>', methods=['PATCH'])
def update_domain_plan(domain_plan_id):
    """Partial update of ``vision, visionAge, visionMedia, goals, completed``."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'message': INVALID, 'error': 'JSON object required'}), 400

    try:
        domain_plan = run_async(get_store().domain_plans.update(domain_plan_id, data))
    except SchemaError as e:
        current_app.logger.warning(f"Rejected update of domain plan {domain_plan_id}: {e}")
        return jsonify({'message': INVALID, 'error': str(e)}), 400
    except PersistenceError as e:
        if e.status_code == 404:
            return jsonify({'message': NOT_FOUND}), 404
        current_app.logger.error(f"Error updating domain plan {domain_plan_id}: {e}")
        return jsonify({'message': str(e)}), e.status_code or 500
    return jsonify(domain_plan.to_dict()), 200
