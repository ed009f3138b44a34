"""Customer service: private persons and companies."""
import logging
from typing import Any, Dict, Mapping

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models import Customer, CustomerType, WorkOrder
from app.exceptions import BusinessLogicError, NotFoundError

logger = logging.getLogger(__name__)

SHARED_FIELDS = ('phone', 'email', 'address', 'notes')
PRIVATE_FIELDS = ('first_name', 'last_name', 'personal_number')
COMPANY_FIELDS = (
    'company_name', 'org_number', 'contact_first_name', 'contact_last_name',
    'invoice_address', 'reference',
)


def _clean(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _apply_payload(customer: Customer, data: Mapping[str, Any], partial: bool = False) -> None:
    if 'customer_type' in data or not partial:
        raw_type = (data.get('customer_type') or CustomerType.PRIVATE.value)
        try:
            customer.customer_type = CustomerType(str(raw_type).upper()).value
        except ValueError:
            raise BusinessLogicError(f'Ogiltig kundtyp: {raw_type}')

    for field in SHARED_FIELDS + PRIVATE_FIELDS + COMPANY_FIELDS:
        if field in data or not partial:
            setattr(customer, field, _clean(data.get(field)))

    if customer.is_company:
        if not customer.company_name:
            raise BusinessLogicError('Företagsnamn är obligatoriskt.')
    elif not (customer.first_name and customer.last_name):
        raise BusinessLogicError('För- och efternamn är obligatoriska.')


def get_customer(session: Session, customer_id: int) -> Customer:
    customer = session.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError('Kunden hittades inte.')
    return customer


def create_customer(session: Session, data: Mapping[str, Any]) -> Customer:
    try:
        customer = Customer()
        _apply_payload(customer, data)
        session.add(customer)
        session.commit()
        logger.info(f"Customer created: id={customer.id} type={customer.customer_type}")
        return customer
    except Exception:
        session.rollback()
        raise


def update_customer(session: Session, customer_id: int, data: Mapping[str, Any]) -> Customer:
    try:
        customer = get_customer(session, customer_id)
        _apply_payload(customer, data, partial=True)
        session.commit()
        return customer
    except Exception:
        session.rollback()
        raise


def delete_customer(session: Session, customer_id: int) -> None:
    """Delete a customer that has no work orders."""
    try:
        customer = get_customer(session, customer_id)
        has_orders = session.query(WorkOrder.id).filter(WorkOrder.customer_id == customer_id).first()
        if has_orders:
            raise BusinessLogicError('Kunden har arbetsordrar och kan inte tas bort.')
        session.delete(customer)
        session.commit()
        logger.info(f"Customer deleted: id={customer_id}")
    except Exception:
        session.rollback()
        raise


def list_customers(session: Session, search: str = '', customer_type: str = '',
                   page: int = 1, page_size: int = 10) -> Dict[str, Any]:
    """Paginated customer listing, newest first."""
    query = session.query(Customer)
    if customer_type:
        query = query.filter(Customer.customer_type == customer_type.upper())
    if search:
        pattern = f'%{search}%'
        query = query.filter(
            or_(
                Customer.first_name.ilike(pattern),
                Customer.last_name.ilike(pattern),
                Customer.company_name.ilike(pattern),
                Customer.phone.like(pattern),
                Customer.email.ilike(pattern),
            )
        )

    page = max(page, 1)
    total = query.count()
    customers = (
        query.order_by(Customer.created_at.desc(), Customer.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {
        'customers': customers,
        'pagination': {
            'total': total,
            'page': page,
            'page_size': page_size,
            'total_pages': (total + page_size - 1) // page_size if page_size else 0,
        },
    }
