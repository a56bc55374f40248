"""
Shopping cart kept on the client.

The stored array holds one entry per "add to cart" click, each a product
document as returned by the catalog. Cart lines are derived from it: one
line per product id, quantity equal to the number of entries for that id,
display fields taken from the first entry. A ``quantity`` on a product
document is its stock count and never becomes the line quantity.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from client_store import CART_KEY, ClientStore


def entry_id(raw: Dict[str, Any]) -> Optional[str]:
    return raw.get("_id") or raw.get("id")


def normalize_cart(raw_items: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw_items, list):
        return []
    lines: Dict[str, Dict[str, Any]] = {}
    for raw in raw_items:
        if not raw or not isinstance(raw, dict):
            continue
        item_id = entry_id(raw)
        if not item_id:
            continue
        if item_id in lines:
            lines[item_id] = {**lines[item_id], "quantity": lines[item_id]["quantity"] + 1}
        else:
            fields = {k: v for k, v in raw.items() if k not in ("_id", "quantity")}
            lines[item_id] = {**fields, "id": item_id, "quantity": 1}
    return list(lines.values())


def line_price(line: Dict[str, Any]) -> Decimal:
    """Price of one unit; a missing or unreadable price counts as zero."""
    try:
        price = Decimal(str(line.get("price")))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("0")
    return price if price.is_finite() else Decimal("0")


def cart_total(lines: List[Dict[str, Any]]) -> Decimal:
    return sum((line_price(line) * line.get("quantity", 1) for line in lines), Decimal("0"))


def format_currency(amount: Decimal) -> str:
    return f"${amount:,.2f}"


class CartStore:
    def __init__(self, store: ClientStore):
        self._store = store
        stored = store.read(CART_KEY, [])
        if not isinstance(stored, list):
            stored = []
        self._entries: List[Dict[str, Any]] = [e for e in stored if isinstance(e, dict) and entry_id(e)]

    @property
    def lines(self) -> List[Dict[str, Any]]:
        return normalize_cart(self._entries)

    def __len__(self) -> int:
        return len(self.lines)

    def add(self, product: Dict[str, Any]) -> None:
        if not entry_id(product):
            raise ValueError("Product has no id")
        self._entries.append({k: v for k, v in product.items() if k != "photo"})
        self._save()

    def remove(self, product_id: str) -> None:
        self._entries = [e for e in self._entries if entry_id(e) != product_id]
        self._save()

    def replace(self, products: List[Dict[str, Any]]) -> None:
        self._entries = [dict(p) for p in products if isinstance(p, dict) and entry_id(p)]
        self._save()

    def total(self) -> Decimal:
        return cart_total(self.lines)

    def formatted_total(self) -> str:
        return format_currency(self.total())

    def clear(self) -> None:
        self._entries = []
        self._store.clear(CART_KEY)

    def _save(self) -> None:
        self._store.write(CART_KEY, self._entries)
