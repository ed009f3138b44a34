"""
Order pricing and ROT tax-deduction engine.

Single source of truth for turning order lines into line prices, order totals
and the ROT deduction. Used by work-order create/update, the live order form
preview and document generation.

The module is pure: no database, no Flask, no I/O. Callers load catalog data
first and pass it in as PriceSnapshot values.
"""
import enum
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

ZERO = Decimal('0')
ONE = Decimal('1')
HUNDRED = Decimal('100')
THOUSAND = Decimal('1000')
CENT = Decimal('0.01')

MAX_LINE_COUNT = 10 ** 6
# BIGINT primary keys
MAX_ID = 2 ** 63 - 1


class PricingModel(str, enum.Enum):
    """Unit of measure a catalog item is priced by."""
    PER_UNIT = 'ST'
    PER_LENGTH = 'M'
    PER_AREA = 'M2'
    PER_DURATION = 'TIM'

    @classmethod
    def parse(cls, value: Union['PricingModel', str, None]) -> 'PricingModel':
        """Parse a stored code (ST/M/M2/TIM) or member name. Raises ValueError."""
        if isinstance(value, cls):
            return value
        if value is None:
            raise ValueError('Pricing model is required')
        text = str(value).strip().upper()
        for member in cls:
            if text in (member.value, member.name):
                return member
        raise ValueError(f'Unknown pricing model: {value}')


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Coerce raw input to Decimal.

    None, empty strings and unparseable values give None. Strings may use a
    decimal comma ("12,5"). Floats go through str() to avoid binary noise.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    text = str(value).strip().replace(' ', '').replace(',', '.')
    if not text:
        return None
    try:
        number = Decimal(text)
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def to_bounded_int(value: Any, limit: int) -> Optional[int]:
    """
    Coerce raw input to an int within [-limit, limit].

    Non-integral, unparseable and out-of-range values give None. The range is
    checked on the Decimal so huge exponents never reach int().
    """
    number = to_decimal(value)
    if number is None or abs(number) > limit or number != number.to_integral_value():
        return None
    return int(number)


def round_currency(value: Optional[Decimal]) -> Decimal:
    """Round to öre for presentation. Never used before aggregation."""
    if value is None:
        return ZERO.quantize(CENT)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _positive(value: Optional[Decimal]) -> bool:
    return value is not None and value > 0


# Catalog side -------------------------------------------------------------

@dataclass(frozen=True)
class PriceSnapshot:
    """
    The pricing-relevant part of a catalog item.

    Built from the live catalog when a line is created or its item changes,
    and from an order line's snapshot columns once the line is persisted.
    """
    unit_price_excl_tax: Decimal
    vat_rate: Decimal
    pricing_model: PricingModel
    unit_price_incl_tax: Optional[Decimal] = None

    def __post_init__(self):
        price = to_decimal(self.unit_price_excl_tax)
        vat = to_decimal(self.vat_rate)
        if price is None or price < 0:
            raise ValueError(f'Invalid unit price: {self.unit_price_excl_tax}')
        if vat is None or vat < 0:
            raise ValueError(f'Invalid VAT rate: {self.vat_rate}')
        incl = to_decimal(self.unit_price_incl_tax)
        if incl is None:
            incl = price * (ONE + vat / HUNDRED)
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, 'unit_price_excl_tax', price)
        object.__setattr__(self, 'vat_rate', vat)
        object.__setattr__(self, 'pricing_model', PricingModel.parse(self.pricing_model))
        object.__setattr__(self, 'unit_price_incl_tax', incl)

    @classmethod
    def from_catalog_item(cls, item) -> 'PriceSnapshot':
        return cls(
            unit_price_excl_tax=item.unit_price_excl_tax,
            vat_rate=item.vat_rate,
            pricing_model=item.pricing_model,
            unit_price_incl_tax=item.unit_price_incl_tax,
        )

    @classmethod
    def from_order_line(cls, line) -> 'PriceSnapshot':
        """Rebuild the frozen price of a persisted line (incl. price is derived)."""
        return cls(
            unit_price_excl_tax=line.unit_price_excl_tax_snapshot,
            vat_rate=line.vat_rate_snapshot,
            pricing_model=line.pricing_model_snapshot,
        )


# Line side ----------------------------------------------------------------

@dataclass(frozen=True)
class LineInput:
    """Raw inputs of one order line, as typed into the form."""
    catalog_item_id: Optional[int]
    count: int = 1
    discount_percent: Optional[Decimal] = None
    width_mm: Optional[Decimal] = None
    height_mm: Optional[Decimal] = None
    length_mm: Optional[Decimal] = None
    duration_hours: Optional[Decimal] = None
    comment: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'LineInput':
        """Build from a JSON/form dict. Unparseable or out-of-range numbers become None."""
        count = to_bounded_int(data.get('count'), MAX_LINE_COUNT)
        comment = data.get('comment')
        return cls(
            catalog_item_id=to_bounded_int(data.get('catalog_item_id'), MAX_ID),
            count=count if count is not None else 1,
            discount_percent=to_decimal(data.get('discount_percent')),
            width_mm=to_decimal(data.get('width_mm')),
            height_mm=to_decimal(data.get('height_mm')),
            length_mm=to_decimal(data.get('length_mm')),
            duration_hours=to_decimal(data.get('duration_hours')),
            comment=comment.strip() or None if isinstance(comment, str) else None,
        )


@dataclass(frozen=True)
class UnitMeasure:
    @property
    def quantity(self) -> Decimal:
        return ONE


@dataclass(frozen=True)
class LengthMeasure:
    length_mm: Optional[Decimal]

    @property
    def quantity(self) -> Decimal:
        if not _positive(self.length_mm):
            return ONE
        return self.length_mm / THOUSAND


@dataclass(frozen=True)
class AreaMeasure:
    width_mm: Optional[Decimal]
    height_mm: Optional[Decimal]

    @property
    def quantity(self) -> Decimal:
        if not (_positive(self.width_mm) and _positive(self.height_mm)):
            return ONE
        return (self.width_mm / THOUSAND) * (self.height_mm / THOUSAND)


@dataclass(frozen=True)
class DurationMeasure:
    duration_hours: Optional[Decimal]

    @property
    def quantity(self) -> Decimal:
        if not _positive(self.duration_hours):
            return ONE
        return self.duration_hours


Measure = Union[UnitMeasure, LengthMeasure, AreaMeasure, DurationMeasure]

_MEASURE_BUILDERS = {
    PricingModel.PER_UNIT: lambda line: UnitMeasure(),
    PricingModel.PER_LENGTH: lambda line: LengthMeasure(to_decimal(line.length_mm)),
    PricingModel.PER_AREA: lambda line: AreaMeasure(to_decimal(line.width_mm), to_decimal(line.height_mm)),
    PricingModel.PER_DURATION: lambda line: DurationMeasure(to_decimal(line.duration_hours)),
}


def measure_for(pricing_model: PricingModel, line: LineInput) -> Measure:
    """Pick the dimension fields the pricing model needs."""
    return _MEASURE_BUILDERS[PricingModel.parse(pricing_model)](line)


@dataclass(frozen=True)
class PricedLine:
    catalog_item_id: Optional[int]
    snapshot: PriceSnapshot
    measured_quantity: Decimal
    line_total_excl_tax: Decimal
    line_total_incl_tax: Decimal

    @property
    def pricing_model(self) -> PricingModel:
        return self.snapshot.pricing_model

    @property
    def is_labor(self) -> bool:
        """Only hourly lines count as labor for ROT."""
        return self.snapshot.pricing_model is PricingModel.PER_DURATION


def price_line(line: LineInput, snapshot: Optional[PriceSnapshot]) -> Optional[PricedLine]:
    """
    Price one order line against its catalog snapshot.

    Returns None when the catalog item is gone; the line then contributes
    nothing. Missing or zero dimensions price at a measured quantity of 1.
    """
    if snapshot is None:
        return None

    quantity = measure_for(snapshot.pricing_model, line).quantity
    discount = to_decimal(line.discount_percent) or ZERO
    factor = ONE - discount / HUNDRED
    count = Decimal(int(line.count))

    return PricedLine(
        catalog_item_id=line.catalog_item_id,
        snapshot=snapshot,
        measured_quantity=quantity,
        line_total_excl_tax=snapshot.unit_price_excl_tax * count * quantity * factor,
        line_total_incl_tax=snapshot.unit_price_incl_tax * count * quantity * factor,
    )


# Order side ---------------------------------------------------------------

@dataclass(frozen=True)
class OrderTotals:
    total_excl_tax: Decimal
    total_incl_tax: Decimal
    labor_total_excl_tax: Decimal
    labor_total_incl_tax: Decimal
    deduction_amount: Decimal
    payable_amount: Decimal
    has_labor_lines: bool
    deduction_requested: bool = False

    @property
    def vat_amount(self) -> Decimal:
        return self.total_incl_tax - self.total_excl_tax

    @property
    def deduction_without_labor(self) -> bool:
        """ROT was asked for but there is no hourly line to apply it to."""
        return self.deduction_requested and not self.has_labor_lines

    def as_dict(self) -> Dict[str, Any]:
        """Presentation form: amounts rounded to öre."""
        return {
            'total_excl_tax': round_currency(self.total_excl_tax),
            'total_incl_tax': round_currency(self.total_incl_tax),
            'vat_amount': round_currency(self.vat_amount),
            'labor_total_excl_tax': round_currency(self.labor_total_excl_tax),
            'labor_total_incl_tax': round_currency(self.labor_total_incl_tax),
            'deduction_amount': round_currency(self.deduction_amount),
            'payable_amount': round_currency(self.payable_amount),
            'has_labor_lines': self.has_labor_lines,
        }


def aggregate(lines: Sequence[PricedLine],
              tax_deduction_enabled: bool,
              tax_deduction_percent: Optional[Decimal]) -> OrderTotals:
    """
    Sum priced lines and compute the ROT deduction over hourly lines.

    The deduction percent is not range-checked here; form validation owns that.
    """
    total_excl = sum((l.line_total_excl_tax for l in lines), ZERO)
    total_incl = sum((l.line_total_incl_tax for l in lines), ZERO)

    labor = [l for l in lines if l.is_labor]
    labor_excl = sum((l.line_total_excl_tax for l in labor), ZERO)
    labor_incl = sum((l.line_total_incl_tax for l in labor), ZERO)

    percent = to_decimal(tax_deduction_percent)
    deduction = ZERO
    if tax_deduction_enabled and percent and labor_incl > 0:
        deduction = labor_incl * percent / HUNDRED

    return OrderTotals(
        total_excl_tax=total_excl,
        total_incl_tax=total_incl,
        labor_total_excl_tax=labor_excl,
        labor_total_incl_tax=labor_incl,
        deduction_amount=deduction,
        payable_amount=total_incl - deduction,
        has_labor_lines=bool(labor),
        deduction_requested=bool(tax_deduction_enabled),
    )


@dataclass(frozen=True)
class OrderPricing:
    # Aligned with the input lines; None where the catalog item is missing
    lines: List[Optional[PricedLine]]
    totals: OrderTotals
    skipped_catalog_item_ids: List[Optional[int]] = field(default_factory=list)

    @property
    def priced_lines(self) -> List[PricedLine]:
        return [l for l in self.lines if l is not None]


def price_order(lines: Sequence[LineInput],
                catalog: Mapping[int, PriceSnapshot],
                tax_deduction_enabled: bool = False,
                tax_deduction_percent: Optional[Decimal] = None) -> OrderPricing:
    """Price every line against the catalog and aggregate the result."""
    results = [price_line(line, catalog.get(line.catalog_item_id)) for line in lines]
    priced = [r for r in results if r is not None]
    skipped = [line.catalog_item_id for line, r in zip(lines, results) if r is None]

    return OrderPricing(
        lines=results,
        totals=aggregate(priced, tax_deduction_enabled, tax_deduction_percent),
        skipped_catalog_item_ids=skipped,
    )
