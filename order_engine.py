# order_engine.py

import logging
from dataclasses import dataclass, asdict, fields, replace
from typing import Iterable, List, Optional, Tuple, Union

from gst_engine import GSTEngine, GSTRegime

logger = logging.getLogger("GSTEngine.orders")

# —————————————————————————————————————————————————————
# Line Types


@dataclass(frozen=True)
class LineInputs:
    """
    Commercial inputs of one order line. None counts as zero.

    The GST percentages are whatever the order workflow wrote onto the line
    after classifying the order; they are consumed as plain numbers and are
    never re-derived from billing/shipping state here.
    """
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    discount_percent: Optional[float] = None
    cgst_percent: Optional[float] = None
    sgst_percent: Optional[float] = None
    igst_percent: Optional[float] = None


@dataclass(frozen=True)
class LineFields:
    """Derived amounts of one order line."""
    sub_total: float
    discount_amount: float
    taxable_amount: float
    cgst_amount: float
    sgst_amount: float
    igst_amount: float
    tax_amount: float
    total_amount: float


@dataclass(frozen=True)
class OrderLineItem:
    row_id: Optional[str] = None
    sku_id: Optional[str] = None
    sku_name: Optional[str] = None
    sku_code: Optional[str] = None
    hsn_code: Optional[str] = None

    # commercial inputs
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    discount_percent: Optional[float] = None
    cgst_percent: Optional[float] = None
    sgst_percent: Optional[float] = None
    igst_percent: Optional[float] = None

    # derived, only ever written by apply_calculations
    sub_total: Optional[float] = None
    discount_amount: Optional[float] = None
    taxable_amount: Optional[float] = None
    cgst_amount: Optional[float] = None
    sgst_amount: Optional[float] = None
    igst_amount: Optional[float] = None
    tax_amount: Optional[float] = None
    total_amount: Optional[float] = None

    # promotion metadata, passed through untouched
    is_locked: Optional[bool] = None
    promotion_id: Optional[str] = None
    promotion_code: Optional[str] = None
    claimed_free_quantity: Optional[float] = None
    is_offer_item: Optional[bool] = None
    bill_when_stock_arrives: Optional[bool] = None
    remarks: Optional[str] = None

    @property
    def inputs(self) -> LineInputs:
        return LineInputs(
            quantity=self.quantity,
            unit_price=self.unit_price,
            discount_percent=self.discount_percent,
            cgst_percent=self.cgst_percent,
            sgst_percent=self.sgst_percent,
            igst_percent=self.igst_percent,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "OrderLineItem":
        """
        Build an item from the portal's camelCase JSON. Unknown keys and
        stale derived amounts are ignored; numeric inputs must be numbers or
        numeric strings.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Order line must be an object, got {type(data).__name__}")
        kwargs = {}
        for attr, key in _JSON_KEYS.items():
            # derived fields are always recomputed, never read
            if attr in _DERIVED_FIELDS or key not in data or data[key] is None:
                continue
            value = data[key]
            if attr in _NUMERIC_FIELDS:
                if isinstance(value, bool):
                    raise ValueError(f"Invalid number for {key}: {value!r}")
                try:
                    value = float(value)
                except (TypeError, ValueError):
                    raise ValueError(f"Invalid number for {key}: {value!r}") from None
            elif attr in _FLAG_FIELDS:
                value = bool(value)
            else:
                value = str(value)
            kwargs[attr] = value
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return {key: getattr(self, attr) for attr, key in _JSON_KEYS.items()}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


_JSON_KEYS = {f.name: _camel(f.name) for f in fields(OrderLineItem)}
_DERIVED_FIELDS = frozenset(f.name for f in fields(LineFields))
_NUMERIC_FIELDS = frozenset(f.name for f in fields(LineInputs)) | {"claimed_free_quantity"}
_FLAG_FIELDS = frozenset({"is_locked", "is_offer_item", "bill_when_stock_arrives"})

# —————————————————————————————————————————————————————
# Line Aggregator


def compute_line_fields(line: Union[LineInputs, OrderLineItem]) -> LineFields:
    """
    Derive every amount of a line from its commercial inputs.

    Steps run in a fixed order: discount comes off the subtotal before any
    tax is applied, and each tax component uses the line's own percentage.
    Stale derived fields on an ``OrderLineItem`` are ignored.
    """
    if isinstance(line, OrderLineItem):
        line = line.inputs

    quantity = line.quantity or 0
    unit_price = line.unit_price or 0
    discount_percent = line.discount_percent or 0
    cgst_percent = line.cgst_percent or 0
    sgst_percent = line.sgst_percent or 0
    igst_percent = line.igst_percent or 0

    sub_total = unit_price * quantity
    discount_amount = sub_total * discount_percent / 100
    taxable_amount = sub_total - discount_amount

    cgst_amount = taxable_amount * cgst_percent / 100
    sgst_amount = taxable_amount * sgst_percent / 100
    igst_amount = taxable_amount * igst_percent / 100

    tax_amount = cgst_amount + sgst_amount + igst_amount
    total_amount = taxable_amount + tax_amount

    return LineFields(
        sub_total=sub_total,
        discount_amount=discount_amount,
        taxable_amount=taxable_amount,
        cgst_amount=cgst_amount,
        sgst_amount=sgst_amount,
        igst_amount=igst_amount,
        tax_amount=tax_amount,
        total_amount=total_amount,
    )


def apply_calculations(item: OrderLineItem) -> OrderLineItem:
    """Return a copy of ``item`` with all derived fields recomputed."""
    computed = compute_line_fields(item)
    logger.debug(f"Line {item.row_id}: {computed}")
    # every derived field is overwritten, zeros included
    return replace(item, **asdict(computed))


def apply_regime(item: OrderLineItem,
                 regime: GSTRegime,
                 engine: Optional[GSTEngine] = None) -> OrderLineItem:
    """Write the regime's GST percentages onto the line, then recompute it."""
    cgst, sgst, igst = (engine or GSTEngine()).percentages(regime)
    return apply_calculations(
        replace(item, cgst_percent=cgst, sgst_percent=sgst, igst_percent=igst)
    )


def recompute_lines(items: Iterable[OrderLineItem]) -> List[OrderLineItem]:
    return [apply_calculations(item) for item in items]


def prepare_order_lines(items: Iterable[OrderLineItem],
                        billing_state: Optional[str],
                        shipping_state: Optional[str],
                        engine: Optional[GSTEngine] = None) -> Tuple[GSTRegime, List[OrderLineItem]]:
    """
    Classify the order once from its billing/shipping state and stamp the
    resulting percentages on every line.
    """
    engine = engine or GSTEngine()
    regime = engine.determine_regime(billing_state, shipping_state)
    lines = [apply_regime(item, regime, engine) for item in items]
    logger.info(
        f"Order classified {regime.value} "
        f"(billing={billing_state!r}, shipping={shipping_state!r}), {len(lines)} lines"
    )
    return regime, lines

# —————————————————————————————————————————————————————
# Order Summary


@dataclass(frozen=True)
class OrderSummary:
    line_count: int = 0
    total_quantity: float = 0.0
    total_sub_total: float = 0.0
    total_discount_amount: float = 0.0
    total_taxable_amount: float = 0.0
    cgst_amount: float = 0.0
    sgst_amount: float = 0.0
    igst_amount: float = 0.0
    tax_amount: float = 0.0
    net_amount: float = 0.0

    def to_dict(self) -> dict:
        return {_camel(name): value for name, value in asdict(self).items()}


def summarize_order(items: Iterable[OrderLineItem]) -> OrderSummary:
    """
    Order-level totals. Each line is recomputed from its inputs so the
    summary can never disagree with the line totals.
    """
    line_count = 0
    total_quantity = 0.0
    total_sub_total = 0.0
    total_discount = 0.0
    total_taxable = 0.0
    cgst = sgst = igst = 0.0

    for item in items:
        computed = compute_line_fields(item)
        line_count += 1
        total_quantity += item.quantity or 0
        total_sub_total += computed.sub_total
        total_discount += computed.discount_amount
        total_taxable += computed.taxable_amount
        cgst += computed.cgst_amount
        sgst += computed.sgst_amount
        igst += computed.igst_amount

    tax_amount = cgst + sgst + igst
    return OrderSummary(
        line_count=line_count,
        total_quantity=total_quantity,
        total_sub_total=total_sub_total,
        total_discount_amount=total_discount,
        total_taxable_amount=total_taxable,
        cgst_amount=cgst,
        sgst_amount=sgst,
        igst_amount=igst,
        tax_amount=tax_amount,
        net_amount=total_taxable + tax_amount,
    )
