"""Customer model."""
import enum
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntPK


class CustomerType(enum.Enum):
    """Private person or company."""
    PRIVATE = "PRIVAT"
    COMPANY = "FORETAG"


class Customer(Base):
    """Customer (kund). Private and company fields live on the same row."""

    __tablename__ = 'customer'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    customer_type = Column(String(10), nullable=False, default=CustomerType.PRIVATE.value)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # Private person
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    personal_number = Column(String(20), nullable=True)

    # Company
    company_name = Column(String(200), nullable=True)
    org_number = Column(String(20), nullable=True)
    contact_first_name = Column(String(100), nullable=True)
    contact_last_name = Column(String(100), nullable=True)
    invoice_address = Column(Text, nullable=True)
    reference = Column(String(200), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    work_orders = relationship('WorkOrder', back_populates='customer')

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.display_name}', type='{self.customer_type}')>"

    @property
    def is_company(self):
        return self.customer_type == CustomerType.COMPANY.value

    @property
    def display_name(self):
        if self.is_company:
            return self.company_name or ''
        return ' '.join(p for p in (self.first_name, self.last_name) if p)
