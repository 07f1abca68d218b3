"""Running-total bookkeeping and reply text. Pure functions, no I/O."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from tallybot.models.contracts import ParsedItem

USAGE_HINT = 'Try "2 chai" or "1 samosa".'


def _money(amount: float) -> str:
    return f"₹{amount:g}"


@dataclass
class Receipt:
    totals: dict[str, int]
    lines: list[str] = field(default_factory=list)
    total_cost: float = 0


def apply_items(
    totals: Mapping[str, int],
    items: Sequence[ParsedItem],
    catalog: Mapping[str, float],
) -> Receipt:
    """Add ``items`` to a copy of ``totals``, pricing them from ``catalog``.

    Items without a price in ``catalog`` are reported but not counted.
    """
    receipt = Receipt(totals=dict(totals))
    for parsed in items:
        name = parsed.item.lower()
        price = catalog.get(name)
        if price is None:
            receipt.lines.append(f"⚠️ Unknown item: {parsed.item}")
            continue
        receipt.totals[name] = receipt.totals.get(name, 0) + parsed.quantity
        cost = price * parsed.quantity
        receipt.total_cost += cost
        receipt.lines.append(f"✅ {parsed.quantity} x {parsed.item} ({_money(cost)})")
    return receipt


def summarize(totals: Mapping[str, int], catalog: Mapping[str, float]) -> tuple[list[str], float]:
    """Per-item lines and the grand total. Unpriced items count as 0."""
    lines = []
    grand_total: float = 0
    for name, quantity in totals.items():
        cost = catalog.get(name, 0) * quantity
        grand_total += cost
        lines.append(f"• {quantity} x {name} = {_money(cost)}")
    return lines, grand_total


def render_welcome(catalog: Mapping[str, float]) -> str:
    items_list = "\n".join(f"• {name} - {_money(price)}" for name, price in catalog.items())
    return (
        "👋 Welcome to your Daily Expense Bot!\n\n"
        f"Available items:\n{items_list}\n\n"
        "Send messages like:\n"
        '- "2 chai"\n'
        '- "1 samosa and 1 chips"\n'
        '- "get me connect"\n\n'
        "Or use the buttons below:"
    )


def render_receipt(receipt: Receipt) -> str:
    if not receipt.lines:
        return f"No known items found. {USAGE_HINT}"
    body = "\n".join(receipt.lines)
    return f"{body}\n\n💰 Total cost: {_money(receipt.total_cost)}"


def render_total(totals: Mapping[str, int], catalog: Mapping[str, float]) -> str:
    if not totals:
        return "No expenses recorded today."
    lines, grand_total = summarize(totals, catalog)
    body = "\n".join(lines)
    return f"Today's Expenses:\n\n{body}\n\n💰 Grand Total: {_money(grand_total)}"


def render_checkout(totals: Mapping[str, int], catalog: Mapping[str, float]) -> str:
    if not totals:
        return "🛍️ No items to checkout."
    lines, grand_total = summarize(totals, catalog)
    body = "\n".join(lines)
    return (
        f"🛍️ Checkout Summary:\n\n{body}\n\n"
        f"💵 Total Amount: {_money(grand_total)}\n\n"
        "✅ Order confirmed! Your items will be prepared."
    )
