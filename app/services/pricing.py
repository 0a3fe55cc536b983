from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Protocol, Sequence

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.db.session import get_db
from app.models.catalog import Item

CENT = Decimal("0.01")


def quantize_money(amount) -> Decimal:
    """Round to cents, half away from zero, never truncating"""
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount) -> int:
    """12.345 -> 1235 cents"""
    return int(quantize_money(amount) * 100)


@dataclass
class PricedLine:
    id: str
    name: str
    unit_price: Decimal
    quantity: int
    tax_rate: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def snapshot(self) -> Dict[str, object]:
        # JSON column, so money goes in as a string
        return {
            "id": self.id,
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
        }


@dataclass
class PricedCart:
    lines: List[PricedLine] = field(default_factory=list)

    @property
    def subtotal(self) -> Decimal:
        return quantize_money(sum((line.line_total for line in self.lines), Decimal("0")))

    @property
    def tax(self) -> Decimal:
        return quantize_money(sum((line.line_total * line.tax_rate for line in self.lines), Decimal("0")))

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.tax

    def snapshot(self) -> List[Dict[str, object]]:
        return [line.snapshot() for line in self.lines]


class Pricing(Protocol):
    async def price_cart(self, lines: Sequence) -> PricedCart:
        ...


class CatalogPricing:
    """Prices a cart from the live menu, ignoring any client-side prices"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def price_cart(self, lines: Sequence) -> PricedCart:
        quantities: Dict[str, int] = {}
        for line in lines:
            quantities[line.id] = quantities.get(line.id, 0) + line.quantity

        result = await self.db.execute(select(Item).where(Item.sid.in_(list(quantities))))
        items = {item.sid: item for item in result.scalars().all()}

        cart = PricedCart()
        for item_sid, quantity in quantities.items():
            item = items.get(item_sid)
            if item is None or not item.available:
                raise ValidationError(f"Item {item_sid} is not available", code="ITEM_UNAVAILABLE")
            if quantity > item.stock:
                raise ValidationError(
                    f"Only {item.stock} of {item.name} left in stock",
                    code="INSUFFICIENT_STOCK",
                    itemId=item_sid,
                    available=item.stock,
                )
            cart.lines.append(PricedLine(
                id=item.sid,
                name=item.name,
                unit_price=quantize_money(item.price),
                quantity=quantity,
                tax_rate=Decimal(str(item.tax_rate)),
            ))

        return cart


def get_pricing(db: AsyncSession = Depends(get_db)) -> Pricing:
    return CatalogPricing(db)
