"""Named field extraction from the shop's HTML pages.

Every field is described by an ordered tuple of strategies. Strategies are
tried in order and the first non-empty value wins, so a markup change on the
remote site only touches the tables at the bottom of this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from bs4 import BeautifulSoup


@dataclass(frozen=True)
class Strategy:
    """Read a value from the first element matching ``selector``.

    With ``attribute`` set the attribute value is used, otherwise the
    element's stripped text.
    """

    name: str
    selector: str
    attribute: Optional[str] = None

    def extract(self, soup: BeautifulSoup) -> str:
        for node in soup.select(self.selector):
            if self.attribute:
                raw = node.get(self.attribute)
                value = raw if isinstance(raw, str) else ""
            else:
                value = node.get_text()
            value = value.strip()
            if value:
                return value
        return ""


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def extract_first(soup: BeautifulSoup, strategies: Iterable[Strategy]) -> str:
    for strategy in strategies:
        value = strategy.extract(soup)
        if value:
            return value
    return ""


def parse_money(text: str) -> Optional[int]:
    """Parse ``"12,000원"`` style amounts; ``None`` when not a number."""
    cleaned = text.replace(",", "").replace("원", "").strip()
    if not cleaned:
        return None
    try:
        return int(cleaned)
    except ValueError:
        return None


def extract_money(soup: BeautifulSoup, strategies: Sequence[Strategy]) -> Optional[int]:
    """Return the first non-zero amount, ``0`` if only zeros were seen, else ``None``."""
    seen_zero = False
    for strategy in strategies:
        amount = parse_money(strategy.extract(soup))
        if amount is None:
            continue
        if amount != 0:
            return amount
        seen_zero = True
    return 0 if seen_zero else None


ROUND = (
    Strategy("round-text", "#curRound"),
    Strategy("round-input", "input#curRound", "value"),
)
DRAW_DATE = (
    Strategy("draw-date-input", "input#ROUND_DRAW_DATE", "value"),
    Strategy("draw-date-any", "#ROUND_DRAW_DATE", "value"),
)
SALE_END = (
    Strategy("pay-limit-input", "input#WAMT_PAY_TLMT_END_DT", "value"),
    Strategy("pay-limit-any", "#WAMT_PAY_TLMT_END_DT", "value"),
)

PURCHASE_PAGE_BALANCE = (
    Strategy("balance-text", "#moneyBalance"),
    Strategy("balance-input", "input#moneyBalance", "value"),
)
ACCOUNT_PAGE_BALANCE = (
    Strategy("total-amount", "#totalAmt"),
    Strategy("deposit-num", "span.deposit-num"),
)
