"""Customers blueprint - private persons and companies."""
from flask import Blueprint, request, jsonify, current_app
from app.database import get_session
from app.models import Customer
from app.services.customer_service import (
    create_customer,
    delete_customer,
    get_customer,
    list_customers,
    update_customer,
)
from app.middleware import require_login

customers_bp = Blueprint('customers', __name__, url_prefix='/customers')


def serialize_customer(customer: Customer) -> dict:
    return {
        'id': customer.id,
        'customer_type': customer.customer_type,
        'display_name': customer.display_name,
        'phone': customer.phone,
        'email': customer.email,
        'address': customer.address,
        'notes': customer.notes,
        'first_name': customer.first_name,
        'last_name': customer.last_name,
        'personal_number': customer.personal_number,
        'company_name': customer.company_name,
        'org_number': customer.org_number,
        'contact_first_name': customer.contact_first_name,
        'contact_last_name': customer.contact_last_name,
        'invoice_address': customer.invoice_address,
        'reference': customer.reference,
        'created_at': customer.created_at.isoformat() if customer.created_at else None,
    }


@customers_bp.route('/', methods=['GET'])
@require_login
def list_all():
    """List customers with search, type filter and pagination."""
    result = list_customers(
        get_session(),
        search=request.args.get('q', '').strip(),
        customer_type=request.args.get('type', '').strip(),
        page=request.args.get('page', 1, type=int),
        page_size=request.args.get('page_size', current_app.config.get('DEFAULT_PAGE_SIZE', 10), type=int),
    )
    return jsonify({
        'customers': [serialize_customer(c) for c in result['customers']],
        'pagination': result['pagination'],
    })


@customers_bp.route('/<int:customer_id>', methods=['GET'])
@require_login
def detail(customer_id):
    customer = get_customer(get_session(), customer_id)
    return jsonify(serialize_customer(customer))


@customers_bp.route('/', methods=['POST'])
@require_login
def create():
    customer = create_customer(get_session(), request.get_json(silent=True) or {})
    return jsonify(serialize_customer(customer)), 201


@customers_bp.route('/<int:customer_id>', methods=['PUT'])
@require_login
def update(customer_id):
    customer = update_customer(get_session(), customer_id, request.get_json(silent=True) or {})
    return jsonify(serialize_customer(customer))


@customers_bp.route('/<int:customer_id>', methods=['DELETE'])
@require_login
def delete(customer_id):
    delete_customer(get_session(), customer_id)
    return jsonify({'status': 'ok'})
