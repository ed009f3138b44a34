"""Catalog blueprint - price list (prislista) management."""
from flask import Blueprint, request, jsonify, current_app
from app.database import get_session
from app.models import CatalogItem
from app.services.catalog_service import (
    create_catalog_item,
    delete_catalog_item,
    get_catalog_item,
    get_catalog_snapshot,
    list_catalog_items,
    update_catalog_item,
)
from app.middleware import require_login, require_role

catalog_bp = Blueprint('catalog', __name__, url_prefix='/catalog')


def serialize_catalog_item(item: CatalogItem) -> dict:
    return {
        'id': item.id,
        'name': item.name,
        'article_number': item.article_number,
        'category': item.category,
        'unit_price_excl_tax': item.unit_price_excl_tax,
        'vat_rate': item.vat_rate,
        'unit_price_incl_tax': item.unit_price_incl_tax,
        'pricing_model': item.pricing_model,
    }


@catalog_bp.route('/', methods=['GET'])
def list_items():
    """List catalog items with search and category filter."""
    result = list_catalog_items(
        get_session(),
        search=request.args.get('q', '').strip(),
        category=request.args.get('category', '').strip(),
        page=request.args.get('page', 1, type=int),
        page_size=request.args.get('page_size', current_app.config.get('DEFAULT_PAGE_SIZE', 10), type=int),
    )
    return jsonify({
        'items': [serialize_catalog_item(i) for i in result['items']],
        'categories': result['categories'],
        'pagination': result['pagination'],
    })


@catalog_bp.route('/snapshot', methods=['GET'])
def snapshot():
    """
    Pricing snapshot for the live order form.

    The form loads this once and keeps it for the session; the preview
    endpoint prices against the same cached snapshot.
    """
    snapshots = get_catalog_snapshot(get_session())
    return jsonify({
        str(item_id): {
            'unit_price_excl_tax': s.unit_price_excl_tax,
            'vat_rate': s.vat_rate,
            'unit_price_incl_tax': s.unit_price_incl_tax,
            'pricing_model': s.pricing_model.value,
        }
        for item_id, s in snapshots.items()
    })


@catalog_bp.route('/<int:item_id>', methods=['GET'])
def detail(item_id):
    return jsonify(serialize_catalog_item(get_catalog_item(get_session(), item_id)))


@catalog_bp.route('/', methods=['POST'])
@require_login
@require_role('ARBETSLEDARE')
def create():
    item = create_catalog_item(get_session(), request.get_json(silent=True) or {})
    current_app.logger.info(f"Catalog item {item.id} created")
    return jsonify(serialize_catalog_item(item)), 201


@catalog_bp.route('/<int:item_id>', methods=['PUT'])
@require_login
@require_role('ARBETSLEDARE')
def update(item_id):
    item = update_catalog_item(get_session(), item_id, request.get_json(silent=True) or {})
    return jsonify(serialize_catalog_item(item))


@catalog_bp.route('/<int:item_id>', methods=['DELETE'])
@require_login
@require_role('ARBETSLEDARE')
def delete(item_id):
    delete_catalog_item(get_session(), item_id)
    return jsonify({'status': 'ok'})
