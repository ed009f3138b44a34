"""Models package - exports all SQLAlchemy models."""
from app.models.app_user import AppUser, UserRole
from app.models.customer import Customer, CustomerType
from app.models.catalog_item import CatalogItem
from app.models.work_order import WorkOrder, WorkOrderStatus
from app.models.order_line import OrderLine

__all__ = [
    'AppUser', 'UserRole',
    'Customer', 'CustomerType',
    'CatalogItem',
    'WorkOrder', 'WorkOrderStatus', 'OrderLine',
]
