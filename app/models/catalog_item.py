"""CatalogItem model (prislista)."""
from decimal import Decimal
from sqlalchemy import Column, String, Numeric, DateTime
from sqlalchemy.sql import func
from app.database import Base, BigIntPK
from app.services.pricing_engine import PricingModel, ONE, HUNDRED


class CatalogItem(Base):
    """
    Priceable product or service.

    unit_price_incl_tax is precomputed on save from the excl. price and VAT
    rate; order lines price their incl. totals from it.
    """

    __tablename__ = 'catalog_item'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    article_number = Column(String(64), nullable=True, unique=True)
    category = Column(String(100), nullable=True)
    unit_price_excl_tax = Column(Numeric(14, 2), nullable=False)
    vat_rate = Column(Numeric(5, 2), nullable=False, default=25)
    unit_price_incl_tax = Column(Numeric(18, 6), nullable=False)
    pricing_model = Column(String(8), nullable=False, default=PricingModel.PER_UNIT.value)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<CatalogItem(id={self.id}, name='{self.name}', model='{self.pricing_model}', price={self.unit_price_excl_tax})>"

    def recompute_incl_tax(self):
        """Refresh the incl. VAT unit price after price or VAT changes."""
        price = Decimal(str(self.unit_price_excl_tax))
        vat = Decimal(str(self.vat_rate))
        self.unit_price_incl_tax = price * (ONE + vat / HUNDRED)
        return self.unit_price_incl_tax
