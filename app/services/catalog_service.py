"""Catalog (prislista) service: price items and the pricing snapshot."""
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models import CatalogItem, OrderLine
from app.exceptions import BusinessLogicError, ConflictError, NotFoundError
from app.services.pricing_engine import HUNDRED, PriceSnapshot, PricingModel, to_decimal

logger = logging.getLogger(__name__)

CACHE_MODULE = 'catalog'
CACHE_KEY = 'snapshot'

# Numeric(14, 2)
MAX_UNIT_PRICE = Decimal('999999999999.99')


def _clean_text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _apply_payload(item: CatalogItem, data: Mapping[str, Any], partial: bool = False) -> None:
    """Validate and copy catalog fields onto item."""
    if not partial or 'name' in data:
        name = _clean_text(data.get('name'))
        if not name:
            raise BusinessLogicError('Namn är obligatoriskt.')
        item.name = name

    if not partial or 'unit_price_excl_tax' in data:
        price = to_decimal(data.get('unit_price_excl_tax'))
        if price is None or price < 0 or price > MAX_UNIT_PRICE:
            raise BusinessLogicError('Ogiltigt pris exkl. moms.')
        item.unit_price_excl_tax = price

    if not partial or 'vat_rate' in data:
        vat = to_decimal(data.get('vat_rate'))
        if vat is None:
            from flask import current_app
            vat = Decimal(current_app.config.get('DEFAULT_VAT_RATE', '25'))
        if vat < 0 or vat > HUNDRED:
            raise BusinessLogicError('Ogiltig momssats.')
        item.vat_rate = vat

    if not partial or 'pricing_model' in data:
        raw_model = data.get('pricing_model') or (item.pricing_model if partial else PricingModel.PER_UNIT.value)
        try:
            item.pricing_model = PricingModel.parse(raw_model).value
        except ValueError:
            raise BusinessLogicError(f'Ogiltig prissättningstyp: {raw_model}')

    if not partial or 'category' in data:
        item.category = _clean_text(data.get('category'))
    if not partial or 'article_number' in data:
        item.article_number = _clean_text(data.get('article_number'))

    item.recompute_incl_tax()


def _ensure_unique_article_number(session: Session, article_number: Optional[str], item_id: Optional[int] = None) -> None:
    if not article_number:
        return
    query = session.query(CatalogItem).filter(CatalogItem.article_number == article_number)
    if item_id is not None:
        query = query.filter(CatalogItem.id != item_id)
    if query.first():
        raise ConflictError('Artikelnumret används redan av en annan post.')


def get_catalog_item(session: Session, item_id: int) -> CatalogItem:
    item = session.query(CatalogItem).filter(CatalogItem.id == item_id).first()
    if not item:
        raise NotFoundError('Prisposten hittades inte.')
    return item


def create_catalog_item(session: Session, data: Mapping[str, Any]) -> CatalogItem:
    """Create a price item; unit_price_incl_tax is derived from price and VAT."""
    try:
        item = CatalogItem()
        _apply_payload(item, data)
        _ensure_unique_article_number(session, item.article_number)
        session.add(item)
        session.commit()
        logger.info(f"Catalog item created: id={item.id} model={item.pricing_model}")
    except Exception:
        session.rollback()
        raise
    invalidate_catalog_cache()
    return item


def update_catalog_item(session: Session, item_id: int, data: Mapping[str, Any]) -> CatalogItem:
    """
    Update a price item.

    Existing order lines keep their snapshot prices; only new or edited lines
    pick up the new price.
    """
    try:
        item = get_catalog_item(session, item_id)
        _apply_payload(item, data, partial=True)
        _ensure_unique_article_number(session, item.article_number, item_id=item.id)
        session.commit()
        logger.info(f"Catalog item updated: id={item.id}")
    except Exception:
        session.rollback()
        raise
    invalidate_catalog_cache()
    return item


def delete_catalog_item(session: Session, item_id: int) -> None:
    """Delete a price item unless an order line still references it."""
    try:
        item = get_catalog_item(session, item_id)
        in_use = session.query(OrderLine.id).filter(OrderLine.catalog_item_id == item_id).first()
        if in_use:
            raise BusinessLogicError(
                'Kan inte ta bort prisposten eftersom den används i en eller flera arbetsordrar.'
            )
        session.delete(item)
        session.commit()
        logger.info(f"Catalog item deleted: id={item_id}")
    except Exception:
        session.rollback()
        raise
    invalidate_catalog_cache()


def list_catalog_items(session: Session, search: str = '', category: str = '',
                       page: int = 1, page_size: int = 10) -> Dict[str, Any]:
    """Paginated catalog listing with search and category filter."""
    query = session.query(CatalogItem)
    if category:
        query = query.filter(CatalogItem.category == category)
    if search:
        query = query.filter(
            or_(
                CatalogItem.name.ilike(f'%{search}%'),
                CatalogItem.article_number.ilike(f'%{search}%'),
                CatalogItem.category.ilike(f'%{search}%'),
            )
        )

    page = max(page, 1)
    total = query.count()
    items = (
        query.order_by(CatalogItem.category.asc(), CatalogItem.name.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    categories = [
        row[0] for row in
        session.query(CatalogItem.category)
        .filter(CatalogItem.category.isnot(None))
        .distinct()
        .order_by(CatalogItem.category)
        .all()
    ]
    return {
        'items': items,
        'categories': categories,
        'pagination': {
            'total': total,
            'page': page,
            'page_size': page_size,
            'total_pages': (total + page_size - 1) // page_size if page_size else 0,
        },
    }


def load_price_snapshots(session: Session, ids: Optional[Iterable[int]] = None) -> Dict[int, PriceSnapshot]:
    """Read catalog items as PriceSnapshot values, keyed by id."""
    query = session.query(CatalogItem)
    if ids is not None:
        ids = {int(i) for i in ids if i is not None}
        if not ids:
            return {}
        query = query.filter(CatalogItem.id.in_(ids))
    return {item.id: PriceSnapshot.from_catalog_item(item) for item in query.all()}


def _snapshot_to_cache(snapshots: Mapping[int, PriceSnapshot]) -> Dict[str, Dict[str, Any]]:
    return {
        str(item_id): {
            'unit_price_excl_tax': s.unit_price_excl_tax,
            'vat_rate': s.vat_rate,
            'pricing_model': s.pricing_model.value,
            'unit_price_incl_tax': s.unit_price_incl_tax,
        }
        for item_id, s in snapshots.items()
    }


def get_catalog_snapshot(session: Session) -> Dict[int, PriceSnapshot]:
    """
    Whole catalog as an immutable pricing snapshot.

    The live order form fetches this once per page load and the preview
    endpoint prices against the same cached copy, so preview and saved
    totals agree. Falls back to the database when Redis is unavailable.
    """
    from app.services.cache_service import get_cache
    from flask import current_app

    cached = get_cache().memoize(
        CACHE_MODULE,
        CACHE_KEY,
        lambda: _snapshot_to_cache(load_price_snapshots(session)),
        ttl=current_app.config.get('CACHE_CATALOG_TTL', 3600),
    )
    return {int(item_id): PriceSnapshot(**fields) for item_id, fields in cached.items()}


def invalidate_catalog_cache() -> None:
    from app.services.cache_service import get_cache
    try:
        get_cache().delete(CACHE_MODULE, CACHE_KEY)
    except RuntimeError:
        # cache not initialised (CLI/scripts)
        logger.debug("Catalog cache not initialised; nothing to invalidate")
