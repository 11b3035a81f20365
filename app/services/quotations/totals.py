from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping

from app.models.enums.quotation_status import DiscountType
from app.utils.decimal_utils import parse_decimal

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class QuotationTotals:
    subtotal: Decimal
    discount: Decimal
    after_discount: Decimal
    tax: Decimal
    total: Decimal


def _item_field(item: Any, name: str):
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def compute_totals(
    items: Iterable[Any],
    discount_type: str | DiscountType | None,
    discount_value,
    tax_rate,
) -> QuotationTotals:
    """Subtotal, discount, tax and total for a set of line items.

    Items may be mappings, ORM rows or schema objects exposing ``qty`` and
    ``amount``. Malformed numbers count as zero so a half-edited draft still
    previews. No rounding is applied here; the same inputs always give the
    same Decimals, so preview and persisted figures agree.
    """
    subtotal = sum(
        (parse_decimal(_item_field(i, "amount")) * parse_decimal(_item_field(i, "qty")) for i in items or ()),
        Decimal("0"),
    )

    value = parse_decimal(discount_value)
    if discount_type == DiscountType.percentage:
        discount = subtotal * value / HUNDRED
    else:
        discount = value

    after_discount = subtotal - discount
    tax = after_discount * parse_decimal(tax_rate) / HUNDRED

    return QuotationTotals(
        subtotal=subtotal,
        discount=discount,
        after_discount=after_discount,
        tax=tax,
        total=after_discount + tax,
    )
