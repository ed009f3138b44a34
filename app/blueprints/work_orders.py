"""Work orders blueprint - orders, lines, live pricing preview and documents."""
from flask import Blueprint, request, jsonify, send_file, current_app, g
from app.database import get_session
from app.models import WorkOrder
from app.services.catalog_service import get_catalog_snapshot
from app.services.document_service import business_info_from_config, render_work_order_pdf
from app.services.pricing_engine import round_currency
from app.services.work_order_service import (
    create_work_order,
    delete_work_order,
    get_work_order,
    list_work_orders,
    preview_pricing,
    set_status,
    summarize_work_order,
    update_work_order,
)
from app.middleware import require_login

work_orders_bp = Blueprint('work_orders', __name__, url_prefix='/work-orders')


def _user_ref(user):
    if user is None:
        return None
    return {'id': user.id, 'full_name': user.full_name}


def serialize_line(line) -> dict:
    return {
        'id': line.id,
        'catalog_item_id': line.catalog_item_id,
        'name': line.catalog_item.name if line.catalog_item else None,
        'count': line.count,
        'discount_percent': line.discount_percent,
        'width_mm': line.width_mm,
        'height_mm': line.height_mm,
        'length_mm': line.length_mm,
        'duration_hours': line.duration_hours,
        'comment': line.comment,
        'unit_price_excl_tax_snapshot': line.unit_price_excl_tax_snapshot,
        'vat_rate_snapshot': line.vat_rate_snapshot,
        'pricing_model_snapshot': line.pricing_model_snapshot,
        'line_total_excl_tax': round_currency(line.line_total_excl_tax),
        'line_total_incl_tax': round_currency(line.line_total_incl_tax),
    }


def serialize_work_order(order: WorkOrder, with_lines: bool = True) -> dict:
    totals = summarize_work_order(order)
    data = {
        'id': order.id,
        'status': order.status,
        'customer': {
            'id': order.customer.id,
            'display_name': order.customer.display_name,
            'customer_type': order.customer.customer_type,
        } if order.customer else None,
        'technician': _user_ref(order.technician),
        'created_by': _user_ref(order.created_by),
        'updated_by': _user_ref(order.updated_by),
        'tax_deduction_enabled': order.tax_deduction_enabled,
        'tax_deduction_percent': order.tax_deduction_percent,
        'work_hours': order.work_hours,
        'material': order.material,
        'reference': order.reference,
        'total_excl_tax': round_currency(order.total_excl_tax),
        'total_incl_tax': round_currency(order.total_incl_tax),
        'totals': totals.as_dict(),
        'tax_deduction_not_applied': totals.deduction_without_labor,
        'created_at': order.created_at.isoformat() if order.created_at else None,
        'updated_at': order.updated_at.isoformat() if order.updated_at else None,
    }
    if with_lines:
        data['lines'] = [serialize_line(line) for line in order.lines]
    return data


@work_orders_bp.route('/', methods=['GET'])
@require_login
def list_all():
    """List work orders with status/search filters and status counts."""
    result = list_work_orders(
        get_session(),
        status=request.args.get('status', '').strip(),
        search=request.args.get('q', '').strip(),
        customer_id=request.args.get('customer_id', type=int),
        technician_id=request.args.get('technician_id', type=int),
        page=request.args.get('page', 1, type=int),
        page_size=request.args.get('page_size', current_app.config.get('DEFAULT_PAGE_SIZE', 10), type=int),
    )
    return jsonify({
        'work_orders': [serialize_work_order(o, with_lines=False) for o in result['work_orders']],
        'status_stats': result['status_stats'],
        'pagination': result['pagination'],
    })


@work_orders_bp.route('/<int:order_id>', methods=['GET'])
@require_login
def detail(order_id):
    return jsonify(serialize_work_order(get_work_order(get_session(), order_id)))


@work_orders_bp.route('/', methods=['POST'])
@require_login
def create():
    """Create a work order; line prices are frozen from the current catalog."""
    order = create_work_order(get_session(), request.get_json(silent=True) or {}, g.user.id)
    current_app.logger.info(f"Work order {order.id} created by user {g.user.id}")
    return jsonify(serialize_work_order(order)), 201


@work_orders_bp.route('/<int:order_id>', methods=['PUT'])
@require_login
def update(order_id):
    """
    Update a work order.

    Lines keep their frozen prices unless refresh_prices is set (query
    string or body), which reprices every line from the current catalog.
    """
    data = request.get_json(silent=True) or {}
    refresh = request.args.get('refresh_prices', '').lower() in ('1', 'true') or bool(data.get('refresh_prices'))
    order = update_work_order(get_session(), order_id, data, g.user.id, refresh_prices=refresh)
    return jsonify(serialize_work_order(order))


@work_orders_bp.route('/<int:order_id>', methods=['DELETE'])
@require_login
def delete(order_id):
    delete_work_order(get_session(), order_id)
    return jsonify({'status': 'ok'})


@work_orders_bp.route('/<int:order_id>/status', methods=['PUT'])
@require_login
def change_status(order_id):
    data = request.get_json(silent=True) or {}
    order = set_status(get_session(), order_id, data.get('status'), g.user.id)
    return jsonify({'id': order.id, 'status': order.status})


@work_orders_bp.route('/preview', methods=['POST'])
@require_login
def preview():
    """Live totals for the order form; nothing is saved."""
    catalog = get_catalog_snapshot(get_session())
    return jsonify(preview_pricing(catalog, request.get_json(silent=True) or {}))


@work_orders_bp.route('/<int:order_id>/pdf', methods=['GET'])
@require_login
def pdf(order_id):
    """Download an OFFERT, ARBETSORDER or FAKTURA document."""
    document_type = request.args.get('type', 'OFFERT').upper()
    order = get_work_order(get_session(), order_id)
    try:
        pdf_buffer = render_work_order_pdf(order, document_type, business_info_from_config(current_app.config))
    except Exception as e:
        current_app.logger.error(f"Error generating {document_type} PDF for work order {order_id}: {e}")
        raise

    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"{document_type.lower()}_{order.id}.pdf"
    )
