"""Work order service: create/update with frozen line pricing, status, listing."""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session

from app.models import AppUser, Customer, OrderLine, WorkOrder, WorkOrderStatus
from app.exceptions import BusinessLogicError, NotFoundError
from app.services.catalog_service import load_price_snapshots
from app.services.pricing_engine import (
    HUNDRED, MAX_ID, MAX_LINE_COUNT, LineInput, OrderTotals, PriceSnapshot, PricedLine,
    aggregate, price_line, price_order, round_currency, to_bounded_int, to_decimal,
)

logger = logging.getLogger(__name__)

NO_LABOR_WARNING = (
    'ROT-avdrag är valt men ordern saknar arbetsrader (TIM). Avdraget blir 0 kr.'
)
MISSING_ITEM_WARNING = 'En eller flera rader refererar till en prispost som inte längre finns och räknas inte med.'

# column precision of the order line dimensions
_DIMENSION_LIMITS = {
    'width_mm': Decimal('99999999.99'),
    'height_mm': Decimal('99999999.99'),
    'length_mm': Decimal('99999999.99'),
    'duration_hours': Decimal('999999.99'),
}


def _parse_id(value, label: str) -> Optional[int]:
    if value is None or value == '' or value == 'none':
        return None
    number = to_bounded_int(value, MAX_ID)
    if number is None or number < 1:
        raise BusinessLogicError(f'Ogiltigt {label}.')
    return number


def _parse_work_hours(value) -> Optional[Decimal]:
    hours = to_decimal(value)
    if hours is not None and (hours < 0 or hours > _DIMENSION_LIMITS['duration_hours']):
        raise BusinessLogicError('Ogiltigt antal arbetstimmar.')
    return hours


def _parse_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'on', 'yes', 'ja')
    return bool(value)


def parse_tax_deduction(data: Mapping[str, Any],
                        current_enabled: bool = False,
                        current_percent: Optional[Decimal] = None) -> Tuple[bool, Optional[Decimal]]:
    """
    Validate the ROT flag and percent.

    The percent is required and must be within 0-100 only when ROT is enabled;
    a disabled deduction always stores NULL.
    """
    enabled = _parse_bool(data['tax_deduction_enabled']) if 'tax_deduction_enabled' in data else current_enabled
    if not enabled:
        return False, None

    if 'tax_deduction_percent' in data:
        raw = data.get('tax_deduction_percent')
        percent = to_decimal(raw)
        if percent is None:
            raise BusinessLogicError('ROT-procentsats krävs när ROT-avdrag är valt.')
    else:
        percent = current_percent
        if percent is None:
            raise BusinessLogicError('ROT-procentsats krävs när ROT-avdrag är valt.')
        percent = Decimal(str(percent))

    if percent < 0 or percent > HUNDRED:
        raise BusinessLogicError('ROT-procentsats måste vara mellan 0 och 100.')
    return True, percent


def _parse_line(raw: Mapping[str, Any], index: int) -> LineInput:
    """Form-level validation of one line; the engine itself never rejects input."""
    position = index + 1
    if _parse_id(raw.get('catalog_item_id'), 'prislista-ID') is None:
        raise BusinessLogicError(f'Rad {position}: prispost saknas.')

    count = to_bounded_int(raw.get('count', 1), MAX_LINE_COUNT)
    if count is None or count < 1:
        raise BusinessLogicError(
            f'Rad {position}: antal måste vara ett heltal mellan 1 och {MAX_LINE_COUNT}.'
        )

    discount = to_decimal(raw.get('discount_percent'))
    if discount is not None and (discount < 0 or discount > HUNDRED):
        raise BusinessLogicError(f'Rad {position}: rabatt måste vara mellan 0 och 100 %.')

    for field, limit in _DIMENSION_LIMITS.items():
        value = to_decimal(raw.get(field))
        if value is not None and value < 0:
            raise BusinessLogicError(f'Rad {position}: {field} kan inte vara negativt.')
        if value is not None and value > limit:
            raise BusinessLogicError(f'Rad {position}: {field} är för stort.')

    return LineInput.from_mapping(raw)


def _line_payloads(data: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    lines = data.get('lines') or []
    if not isinstance(lines, list):
        raise BusinessLogicError('Orderrader måste skickas som en lista.')
    # blank rows from the form are ignored
    return [raw for raw in lines if isinstance(raw, Mapping) and raw]


def _validate_status(status) -> str:
    if status not in WorkOrderStatus.values():
        raise BusinessLogicError('Ogiltig status angiven.')
    return status


def _resolve_customer(session: Session, value) -> int:
    customer_id = _parse_id(value, 'kund-ID')
    if customer_id is None:
        raise BusinessLogicError('Ogiltigt kund-ID.')
    if not session.query(Customer.id).filter(Customer.id == customer_id).first():
        raise BusinessLogicError('Kunden hittades inte.')
    return customer_id


def _resolve_technician(session: Session, value) -> Optional[int]:
    technician_id = _parse_id(value, 'tekniker-ID')
    if technician_id is None:
        return None
    if not session.query(AppUser.id).filter(AppUser.id == technician_id).first():
        raise BusinessLogicError(f'Tekniker med ID {technician_id} hittades inte.')
    return technician_id


def _apply_totals(order: WorkOrder, priced: Sequence[PricedLine]) -> OrderTotals:
    totals = aggregate(priced, order.tax_deduction_enabled, order.tax_deduction_percent)
    order.total_excl_tax = totals.total_excl_tax
    order.total_incl_tax = totals.total_incl_tax
    return totals


def get_work_order(session: Session, order_id: int) -> WorkOrder:
    order = session.query(WorkOrder).filter(WorkOrder.id == order_id).first()
    if not order:
        raise NotFoundError('Arbetsordern hittades inte.')
    return order


def create_work_order(session: Session, data: Mapping[str, Any], user_id: Optional[int]) -> WorkOrder:
    """
    Create a work order and freeze the catalog price onto every line.

    A line pointing to a catalog item that does not exist rejects the whole
    request here; only the live preview skips such lines.
    """
    try:
        customer_id = _resolve_customer(session, data.get('customer_id'))
        technician_id = _resolve_technician(session, data.get('technician_id'))
        enabled, percent = parse_tax_deduction(data)
        status = _validate_status(data.get('status') or WorkOrderStatus.MEASUREMENT.value)
        inputs = [_parse_line(raw, i) for i, raw in enumerate(_line_payloads(data))]

        catalog = load_price_snapshots(session, [l.catalog_item_id for l in inputs])
        missing = sorted({l.catalog_item_id for l in inputs if l.catalog_item_id not in catalog})
        if missing:
            raise BusinessLogicError(f'Prispost hittades inte: {", ".join(map(str, missing))}')

        order = WorkOrder(
            customer_id=customer_id,
            technician_id=technician_id,
            status=status,
            tax_deduction_enabled=enabled,
            tax_deduction_percent=percent,
            work_hours=_parse_work_hours(data.get('work_hours')),
            material=(data.get('material') or '').strip() or None,
            reference=(data.get('reference') or '').strip() or None,
            created_by_id=user_id,
            updated_by_id=user_id,
        )

        priced_lines = []
        for line_input in inputs:
            priced = price_line(line_input, catalog[line_input.catalog_item_id])
            line = OrderLine()
            line.apply_inputs(line_input)
            line.apply_pricing(priced)
            order.lines.append(line)
            priced_lines.append(priced)

        totals = _apply_totals(order, priced_lines)
        session.add(order)
        session.commit()
        logger.info(
            f"Work order created: id={order.id} lines={len(priced_lines)} "
            f"total_incl={round_currency(totals.total_incl_tax)}"
        )
        return order
    except Exception:
        session.rollback()
        raise


def _sync_lines(session: Session, order: WorkOrder, payloads: List[Mapping[str, Any]],
                refresh_prices: bool) -> List[PricedLine]:
    """
    Create, update and delete lines to match the payload.

    A kept line whose catalog item is unchanged is repriced from its own
    snapshot; new lines, lines that switched item and every line when
    refresh_prices is set use the live catalog.
    """
    existing = {line.id: line for line in order.lines}
    parsed = []
    seen_ids = set()
    for i, raw in enumerate(payloads):
        line_id = _parse_id(raw.get('id'), 'rad-ID')
        if line_id is not None and line_id not in existing:
            raise BusinessLogicError(f'Rad {i + 1}: raden tillhör inte arbetsordern.')
        if line_id is not None and line_id in seen_ids:
            raise BusinessLogicError(f'Rad {i + 1}: raden förekommer mer än en gång.')
        seen_ids.add(line_id)
        parsed.append((line_id, _parse_line(raw, i)))

    def uses_snapshot(line_id, line_input):
        return (not refresh_prices and line_id is not None
                and existing[line_id].catalog_item_id == line_input.catalog_item_id)

    catalog = load_price_snapshots(
        session, [li.catalog_item_id for lid, li in parsed if not uses_snapshot(lid, li)]
    )

    kept_ids = set()
    priced_lines = []
    for line_id, line_input in parsed:
        if uses_snapshot(line_id, line_input):
            snapshot = PriceSnapshot.from_order_line(existing[line_id])
        else:
            snapshot = catalog.get(line_input.catalog_item_id)
            if snapshot is None:
                raise BusinessLogicError(f'Prispost hittades inte: {line_input.catalog_item_id}')

        line = existing[line_id] if line_id is not None else OrderLine()
        line.apply_inputs(line_input)
        priced = price_line(line_input, snapshot)
        line.apply_pricing(priced)
        if line_id is None:
            order.lines.append(line)
        else:
            kept_ids.add(line_id)
        priced_lines.append(priced)

    for line_id, line in existing.items():
        if line_id not in kept_ids:
            order.lines.remove(line)

    return priced_lines


def update_work_order(session: Session, order_id: int, data: Mapping[str, Any],
                      user_id: Optional[int], refresh_prices: bool = False) -> WorkOrder:
    """Update header fields and, when 'lines' is given, sync and reprice lines."""
    try:
        order = get_work_order(session, order_id)

        if 'customer_id' in data:
            order.customer_id = _resolve_customer(session, data.get('customer_id'))
        if 'technician_id' in data:
            order.technician_id = _resolve_technician(session, data.get('technician_id'))
        if 'status' in data:
            order.status = _validate_status(data.get('status'))
        if 'material' in data:
            order.material = (data.get('material') or '').strip() or None
        if 'reference' in data:
            order.reference = (data.get('reference') or '').strip() or None
        if 'work_hours' in data:
            order.work_hours = _parse_work_hours(data.get('work_hours'))

        order.tax_deduction_enabled, order.tax_deduction_percent = parse_tax_deduction(
            data, order.tax_deduction_enabled, order.tax_deduction_percent
        )

        if 'lines' in data:
            if order.is_invoiced:
                raise BusinessLogicError('Orderrader på en fakturerad arbetsorder kan inte ändras.')
            priced = _sync_lines(session, order, _line_payloads(data), refresh_prices)
            _apply_totals(order, priced)

        order.updated_by_id = user_id
        session.commit()
        logger.info(f"Work order updated: id={order.id} refresh_prices={refresh_prices}")
        return order
    except Exception:
        session.rollback()
        raise


def set_status(session: Session, order_id: int, status: str, user_id: Optional[int]) -> WorkOrder:
    try:
        order = get_work_order(session, order_id)
        order.status = _validate_status(status)
        order.updated_by_id = user_id
        session.commit()
        return order
    except Exception:
        session.rollback()
        raise


def delete_work_order(session: Session, order_id: int) -> None:
    try:
        order = get_work_order(session, order_id)
        if order.is_invoiced:
            raise BusinessLogicError('Kan inte ta bort en fakturerad arbetsorder.')
        session.delete(order)
        session.commit()
        logger.info(f"Work order deleted: id={order_id}")
    except Exception:
        session.rollback()
        raise


def summarize_work_order(order: WorkOrder) -> OrderTotals:
    """ROT summary from the persisted snapshots; lines are not repriced."""
    return aggregate(
        [line.to_priced_line() for line in order.lines],
        order.tax_deduction_enabled,
        order.tax_deduction_percent,
    )


def preview_pricing(catalog: Mapping[int, PriceSnapshot], data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Live order-form recompute.

    Prices the form state against the catalog snapshot the form loaded.
    Nothing is validated or persisted: missing catalog items are skipped and
    reported as warnings so the form stays usable.
    """
    enabled = _parse_bool(data.get('tax_deduction_enabled', False))
    percent = to_decimal(data.get('tax_deduction_percent')) if enabled else None
    inputs = [LineInput.from_mapping(raw) for raw in _line_payloads(data)]

    pricing = price_order(inputs, catalog, enabled, percent)

    warnings = []
    if pricing.skipped_catalog_item_ids:
        logger.warning(f"Preview skipped lines with unknown catalog items: {pricing.skipped_catalog_item_ids}")
        warnings.append(MISSING_ITEM_WARNING)
    if pricing.totals.deduction_without_labor:
        warnings.append(NO_LABOR_WARNING)

    lines = []
    for priced in pricing.lines:
        if priced is None:
            lines.append(None)
            continue
        lines.append({
            'catalog_item_id': priced.catalog_item_id,
            'pricing_model': priced.pricing_model.value,
            'measured_quantity': priced.measured_quantity,
            'line_total_excl_tax': round_currency(priced.line_total_excl_tax),
            'line_total_incl_tax': round_currency(priced.line_total_incl_tax),
        })

    return {
        'lines': lines,
        'totals': pricing.totals.as_dict(),
        'warnings': warnings,
        'skipped_catalog_item_ids': pricing.skipped_catalog_item_ids,
    }


def list_work_orders(session: Session, status: str = '', search: str = '',
                     customer_id: Optional[int] = None, technician_id: Optional[int] = None,
                     page: int = 1, page_size: int = 10) -> Dict[str, Any]:
    """Paginated listing, newest first, with per-status counts."""
    query = session.query(WorkOrder).outerjoin(Customer, WorkOrder.customer_id == Customer.id)
    counts_query = session.query(WorkOrder.status, func.count(WorkOrder.id)).outerjoin(
        Customer, WorkOrder.customer_id == Customer.id
    )

    if status:
        statuses = [s for s in status.upper().split(',') if s in WorkOrderStatus.values()]
        if statuses:
            query = query.filter(WorkOrder.status.in_(statuses))
    if technician_id is not None:
        query = query.filter(WorkOrder.technician_id == technician_id)
        counts_query = counts_query.filter(WorkOrder.technician_id == technician_id)
    if customer_id is not None:
        query = query.filter(WorkOrder.customer_id == customer_id)
        counts_query = counts_query.filter(WorkOrder.customer_id == customer_id)
    if search:
        pattern = f'%{search}%'
        condition = or_(
            Customer.first_name.ilike(pattern),
            Customer.last_name.ilike(pattern),
            Customer.company_name.ilike(pattern),
            WorkOrder.reference.ilike(pattern),
            WorkOrder.material.ilike(pattern),
            cast(WorkOrder.id, String) == search.strip(),
        )
        query = query.filter(condition)
        counts_query = counts_query.filter(condition)

    page = max(page, 1)
    total = query.count()
    orders = (
        query.order_by(WorkOrder.created_at.desc(), WorkOrder.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    status_stats = {s: 0 for s in WorkOrderStatus.values()}
    for row_status, count in counts_query.group_by(WorkOrder.status).all():
        status_stats[row_status] = count

    return {
        'work_orders': orders,
        'status_stats': status_stats,
        'pagination': {
            'total': total,
            'page': page,
            'page_size': page_size,
            'total_pages': (total + page_size - 1) // page_size if page_size else 0,
        },
    }
