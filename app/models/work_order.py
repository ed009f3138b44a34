"""WorkOrder model (arbetsorder)."""
import enum
from sqlalchemy import Column, BigInteger, String, Numeric, DateTime, Text, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntPK


class WorkOrderStatus(enum.Enum):
    """Work order status enum."""
    MEASUREMENT = "MATNING"
    OFFER = "OFFERT"
    CONFIRMED = "BEKRAFTAD"
    ACTIVE = "AKTIV"
    IN_PROGRESS = "PAGAENDE"
    COMPLETED = "SLUTFORD"
    INVOICED = "FAKTURERAD"
    CANCELLED = "AVBRUTEN"

    @classmethod
    def values(cls):
        return [s.value for s in cls]


class WorkOrder(Base):
    """
    Work order (Arbetsorder).

    total_excl_tax / total_incl_tax are recomputed whenever lines change.
    The ROT deduction amount is never stored; it is derived from the lines
    and tax_deduction_percent when needed.
    """

    __tablename__ = 'work_order'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    customer_id = Column(BigInteger, ForeignKey('customer.id'), nullable=False)
    status = Column(String(20), nullable=False, default=WorkOrderStatus.MEASUREMENT.value)
    tax_deduction_enabled = Column(Boolean, nullable=False, default=False)
    tax_deduction_percent = Column(Numeric(5, 2), nullable=True)
    work_hours = Column(Numeric(8, 2), nullable=True)
    material = Column(Text, nullable=True)
    reference = Column(String(200), nullable=True)
    technician_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    created_by_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    updated_by_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    total_excl_tax = Column(Numeric(18, 6), nullable=False, default=0)
    total_incl_tax = Column(Numeric(18, 6), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    customer = relationship('Customer', back_populates='work_orders')
    technician = relationship('AppUser', foreign_keys=[technician_id])
    created_by = relationship('AppUser', foreign_keys=[created_by_id])
    updated_by = relationship('AppUser', foreign_keys=[updated_by_id])
    lines = relationship(
        'OrderLine',
        back_populates='work_order',
        cascade='all, delete-orphan',
        order_by='OrderLine.id',
    )

    def __repr__(self):
        return f"<WorkOrder(id={self.id}, status='{self.status}', total={self.total_incl_tax})>"

    @property
    def is_invoiced(self):
        return self.status == WorkOrderStatus.INVOICED.value
