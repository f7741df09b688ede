from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from .types import (
    UNIT_PRICE,
    DeviceNotAllowed,
    OutsideSaleWindow,
    PurchasedLine,
    PurchaseOutcome,
    Rejected,
    SessionExpired,
)

# (substrings of the remote rejection message, hint). The remote message
# catalog is free text, so matching is by substring and the first hit wins.
REJECTION_HINTS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("한도", "5000"), "The per-round limit (5,000 won) has already been purchased."),
    (("예치금", "잔액"), "Deposit balance is too low. Top up and try again."),
    (("시간",), "Purchases are not open right now. Check the sale hours."),
)


def format_money(amount: int) -> str:
    return f"{amount:,}"


def rejection_hint(message: str) -> str:
    for needles, hint in REJECTION_HINTS:
        if any(needle in message for needle in needles):
            return hint
    return ""


def format_numbers(numbers: Sequence[int], separator: str = " - ") -> str:
    return separator.join(str(number) for number in numbers)


def _line_label(line: PurchasedLine) -> str:
    return f"[{line.slot} ({line.gen_mode.label})]"


def format_outcome(user_id: str, outcome: PurchaseOutcome, quantity: int) -> str:
    """Render a purchase outcome as a Telegram HTML message."""
    if isinstance(outcome, SessionExpired):
        return f"({user_id}) ❌ <b>Login session expired</b>\n\nPlease log in again."
    if isinstance(outcome, DeviceNotAllowed):
        return f"({user_id}) ❌ <b>Purchase failed</b>\n\nPurchases are not allowed from this device."
    if isinstance(outcome, OutsideSaleWindow):
        return f"({user_id}) ❌ <b>Purchase failed</b>\n\nIt is outside the sale hours."
    if isinstance(outcome, Rejected):
        message = f"({user_id}) ❌ <b>Purchase failed</b>\n\nReason: {outcome.message or outcome.code or 'unknown'}\n"
        hint = rejection_hint(outcome.message)
        if hint:
            message += f"\n💡 {hint}"
        return message

    parts: List[str] = [
        f"({user_id}) ✅ <b>Lotto purchase succeeded!</b>",
        "",
        f"Amount: <b>{format_money(quantity * UNIT_PRICE)} won</b>",
        f"Games: <b>{quantity}</b>",
        "",
    ]
    for line in outcome.lines:
        parts.append(f"{_line_label(line)} {format_numbers(line.numbers)}")
    parts.append("")
    if outcome.draw_date:
        parts.append(f"Draw date: {outcome.draw_date}")
    parts.append("")
    parts.append("Good luck!")
    return "\n".join(parts)


def describe_outcome(outcome: PurchaseOutcome, logger: Optional[logging.Logger] = None) -> None:
    """Write a console summary of ``outcome`` to the log."""
    log = logger or logging.getLogger("dhlotto.formatter")
    if isinstance(outcome, SessionExpired):
        log.error("Login session expired; log in again.")
        return
    if isinstance(outcome, DeviceNotAllowed):
        log.error("Purchases are not allowed from this device.")
        return
    if isinstance(outcome, OutsideSaleWindow):
        log.error("Outside the sale hours.")
        return
    if isinstance(outcome, Rejected):
        log.error("Purchase rejected (code %s): %s", outcome.code or "-", outcome.message or "-")
        hint = rejection_hint(outcome.message)
        if hint:
            log.info(hint)
        return

    count = len(outcome.lines)
    log.info("Purchase completed: %d game(s), %s won", count, format_money(count * UNIT_PRICE))
    for line in outcome.lines:
        log.info("  %s %s", _line_label(line), format_numbers(line.numbers))
    if outcome.draw_date:
        log.info("Draw date: %s", outcome.draw_date)
    if outcome.pay_deadline:
        log.info("Prize claim deadline: %s", outcome.pay_deadline)
    if outcome.barcodes:
        log.info("Barcodes: %s", " ".join(outcome.barcodes))


def format_balance_warning(user_id: str, balance: Optional[int], threshold: int) -> str:
    if balance is None:
        return (
            f"({user_id}) ⚠️ <b>Balance unknown</b>\n\n"
            "The deposit balance could not be read from the site."
        )
    return (
        f"({user_id}) ⚠️ <b>Low balance</b>\n\n"
        f"Current balance: <b>{format_money(balance)} won</b>\n"
        f"Threshold: {format_money(threshold)} won\n\n"
        "💡 Please top up your deposit."
    )


def format_failure(user_id: str, title: str, error: Exception) -> str:
    return f"({user_id}) ❌ <b>{title}</b>\n\n{error}"
