"""OrderLine model for work order line items."""
from decimal import Decimal
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base, BigIntPK
from app.services.pricing_engine import LineInput, PricedLine, PriceSnapshot, measure_for


class OrderLine(Base):
    """
    Order Line (Orderrad).

    Stores a snapshot of the catalog price, VAT rate and pricing model at save
    time, plus the computed totals, so historical orders keep their pricing
    even if the catalog changes later.
    """

    __tablename__ = 'order_line'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    work_order_id = Column(BigInteger, ForeignKey('work_order.id'), nullable=False)
    catalog_item_id = Column(BigInteger, ForeignKey('catalog_item.id'), nullable=True)
    count = Column(Integer, nullable=False, default=1)
    discount_percent = Column(Numeric(5, 2), nullable=False, default=0)
    width_mm = Column(Numeric(10, 2), nullable=True)
    height_mm = Column(Numeric(10, 2), nullable=True)
    length_mm = Column(Numeric(10, 2), nullable=True)
    duration_hours = Column(Numeric(8, 2), nullable=True)
    comment = Column(Text, nullable=True)

    # Snapshot (frozen at save time)
    unit_price_excl_tax_snapshot = Column(Numeric(14, 2), nullable=False)
    vat_rate_snapshot = Column(Numeric(5, 2), nullable=False)
    pricing_model_snapshot = Column(String(8), nullable=False)
    line_total_excl_tax = Column(Numeric(18, 6), nullable=False)
    line_total_incl_tax = Column(Numeric(18, 6), nullable=False)

    # Relationships
    work_order = relationship('WorkOrder', back_populates='lines')
    catalog_item = relationship('CatalogItem', foreign_keys=[catalog_item_id])

    def __repr__(self):
        return f"<OrderLine(id={self.id}, work_order_id={self.work_order_id}, item={self.catalog_item_id}, total={self.line_total_incl_tax})>"

    def to_line_input(self):
        """Pricing inputs of this line."""
        return LineInput(
            catalog_item_id=self.catalog_item_id,
            count=self.count,
            discount_percent=self.discount_percent,
            width_mm=self.width_mm,
            height_mm=self.height_mm,
            length_mm=self.length_mm,
            duration_hours=self.duration_hours,
            comment=self.comment,
        )

    def to_priced_line(self):
        """Persisted pricing as a PricedLine; totals are read, not recomputed."""
        snapshot = PriceSnapshot.from_order_line(self)
        return PricedLine(
            catalog_item_id=self.catalog_item_id,
            snapshot=snapshot,
            measured_quantity=measure_for(snapshot.pricing_model, self.to_line_input()).quantity,
            line_total_excl_tax=Decimal(str(self.line_total_excl_tax)),
            line_total_incl_tax=Decimal(str(self.line_total_incl_tax)),
        )

    def apply_inputs(self, line_input):
        """Copy raw pricing inputs from a LineInput."""
        self.catalog_item_id = line_input.catalog_item_id
        self.count = line_input.count
        self.discount_percent = line_input.discount_percent or 0
        self.width_mm = line_input.width_mm
        self.height_mm = line_input.height_mm
        self.length_mm = line_input.length_mm
        self.duration_hours = line_input.duration_hours
        self.comment = line_input.comment

    def apply_pricing(self, priced):
        """Freeze a PricedLine onto this row."""
        snapshot = priced.snapshot
        self.unit_price_excl_tax_snapshot = snapshot.unit_price_excl_tax
        self.vat_rate_snapshot = snapshot.vat_rate
        self.pricing_model_snapshot = snapshot.pricing_model.value
        self.line_total_excl_tax = priced.line_total_excl_tax
        self.line_total_incl_tax = priced.line_total_incl_tax
