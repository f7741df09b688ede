from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .admission import AdmissionGate, direct_route_of
from .client import LotteryClient
from .errors import AuthenticationError, MissingPurchaseContext, ParseError, ProtocolError, snippet
from .extraction import DRAW_DATE, ROUND, SALE_END, extract_first, parse_html
from .types import (
    GEN_MODE_DIGITS,
    MAX_NUMBER,
    MIN_NUMBER,
    SLOTS,
    Accepted,
    AdmissionDecision,
    DeviceNotAllowed,
    DrawWindow,
    LineSpec,
    OutsideSaleWindow,
    PurchasedLine,
    PurchaseOutcome,
    PurchaseRequest,
    Rejected,
    SessionExpired,
    check_quantity,
)

SUCCESS_CODE = "100"
NEGATIVE_FLAG = "N"
LINE_DELIMITER = "|"
HTML_MARKERS = ("<html", "<!doctype")


def parse_line(raw: str, index: int = 0) -> PurchasedLine:
    """Parse one purchased line such as ``"3|7|12|20|33|41|3"``.

    The last character is the generation-mode digit; the rest is six numbers
    joined by ``|``, optionally preceded by the slot letter.
    """
    text = (raw or "").strip()
    if len(text) < 2:
        raise ParseError(f"purchased line too short: {raw!r}")

    mode_digit, body = text[-1], text[:-1]
    gen_mode = GEN_MODE_DIGITS.get(mode_digit)
    if gen_mode is None:
        raise ParseError(f"unknown generation mode {mode_digit!r} in line {raw!r}")

    segments = [segment.strip() for segment in body.split(LINE_DELIMITER)]
    segments = [segment for segment in segments if segment]
    slot = SLOTS[index] if index < len(SLOTS) else ""
    if segments and not segments[0].isdigit():
        slot = segments.pop(0)

    if len(segments) != 6:
        raise ParseError(f"expected 6 numbers in line {raw!r}, got {len(segments)}")
    try:
        numbers = [int(segment) for segment in segments]
    except ValueError as exc:
        raise ParseError(f"non-numeric value in line {raw!r}") from exc
    if any(not MIN_NUMBER <= number <= MAX_NUMBER for number in numbers):
        raise ParseError(f"number out of range in line {raw!r}")

    return PurchasedLine(slot=slot, numbers=tuple(numbers), gen_mode=gen_mode)


def _barcodes(value: Any) -> Tuple[str, ...]:
    if isinstance(value, list):
        return tuple(str(item) for item in value if item not in (None, ""))
    if isinstance(value, str) and value:
        return (value,)
    return ()


def classify_purchase(
    payload: Mapping[str, Any], logger: Optional[logging.Logger] = None
) -> PurchaseOutcome:
    """Map a parsed execBuy response onto exactly one outcome.

    Order matters: an expired session can also carry a failing result code.
    """
    log = logger or logging.getLogger("dhlotto.purchase")

    if payload.get("loginYn") == NEGATIVE_FLAG:
        return SessionExpired()
    if payload.get("isAllowed") == NEGATIVE_FLAG:
        return DeviceNotAllowed()
    if payload.get("checkOltSaleTime") is False:
        return OutsideSaleWindow()

    result = payload.get("result")
    if not isinstance(result, Mapping):
        return Rejected(code="", message="")

    code = str(result.get("resultCode") or "")
    if code == SUCCESS_CODE:
        lines: List[PurchasedLine] = []
        raw_lines = result.get("arrGameChoiceNum") or []
        if isinstance(raw_lines, str):
            raw_lines = [raw_lines]
        for index, raw in enumerate(raw_lines):
            try:
                lines.append(parse_line(str(raw), index))
            except ParseError as exc:
                log.warning("Skipping unreadable purchased line %r: %s", raw, exc)
        return Accepted(
            lines=tuple(lines),
            draw_date=str(result.get("drawDate") or ""),
            pay_deadline=str(result.get("payLimitDate") or ""),
            barcodes=_barcodes(result.get("barCode")),
        )

    message = result.get("resultMsg")
    return Rejected(code=code, message=message if isinstance(message, str) else "")


def looks_like_html(body: str) -> bool:
    lowered = (body or "").lower()
    return any(marker in lowered for marker in HTML_MARKERS)


def interpret_purchase_body(body: str, logger: Optional[logging.Logger] = None) -> PurchaseOutcome:
    """Classify the raw execBuy body.

    An expired session is answered with the HTML login page instead of JSON,
    so an HTML body counts as ``SessionExpired`` rather than a parse error.
    """
    try:
        payload = json.loads(body)
    except ValueError as exc:
        if looks_like_html(body):
            return SessionExpired()
        raise ParseError("purchase response is not JSON", body) from exc
    if not isinstance(payload, Mapping):
        raise ParseError("purchase response is not a JSON object", body)
    return classify_purchase(payload, logger)


def build_request(window: DrawWindow, admission: AdmissionDecision, quantity: int) -> PurchaseRequest:
    check_quantity(quantity)
    return PurchaseRequest(
        round=window.round,
        direct_route=direct_route_of(admission),
        quantity=quantity,
        line_specs=tuple(LineSpec(slot=slot) for slot in SLOTS[:quantity]),
    )


def form_data(request: PurchaseRequest, window: DrawWindow) -> Dict[str, str]:
    params = [spec.to_param() for spec in request.line_specs]
    return {
        "round": request.round,
        "direct": request.direct_route,
        "nBuyAmount": str(request.amount),
        "param": json.dumps(params),
        "ROUND_DRAW_DATE": window.draw_date,
        "WAMT_PAY_TLMT_END_DT": window.sale_end,
        "gameCnt": str(request.quantity),
    }


class PurchaseExecutor:
    """Lotto 6/45 purchase protocol on top of an authenticated client."""

    def __init__(self, client: LotteryClient, logger: Optional[logging.Logger] = None) -> None:
        self._client = client
        self._logger = logger or client.logger

    def open_game_page(self) -> None:
        site = self._client.site
        self._client.request("GET", site.main_page)
        response = self._client.request("GET", site.game_page, headers={"Referer": site.main_page})
        body = response.text or ""
        if response.status_code != 200 or len(body) < 1000:
            self._logger.warning("Unexpected game page; sample: %s", snippet(body))
            raise ProtocolError(f"game page check failed (status {response.status_code})")
        self._logger.info("Lotto 6/45 game page reachable")

    def fetch_draw_window(self) -> DrawWindow:
        site = self._client.site
        response = self._client.request("GET", site.purchase_page, headers={"Referer": site.game_page})
        soup = parse_html(response.text)
        window = DrawWindow(
            round=extract_first(soup, ROUND),
            draw_date=extract_first(soup, DRAW_DATE),
            sale_end=extract_first(soup, SALE_END),
        )
        if not window.round or not window.draw_date:
            raise MissingPurchaseContext("purchase page is missing the round or draw date")
        self._logger.info("Round %s, draw date %s", window.round, window.draw_date)
        return window

    def submit(self, request: PurchaseRequest, window: DrawWindow) -> PurchaseOutcome:
        site = self._client.site
        headers = {
            "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
            "Referer": site.purchase_page,
            "Origin": site.ol_base,
            "X-Requested-With": "XMLHttpRequest",
        }
        self._logger.info(
            "Submitting purchase: round %s, %d game(s), %s won",
            request.round,
            request.quantity,
            f"{request.amount:,}",
        )
        response = self._client.request(
            "POST", site.purchase_action_url, headers=headers, data=form_data(request, window)
        )
        self._logger.info("Purchase response %s (%d bytes)", response.status_code, len(response.text or ""))
        outcome = interpret_purchase_body(response.text or "", self._logger)
        if isinstance(outcome, SessionExpired):
            self._logger.warning("Purchase answered as expired session; sample: %s", snippet(response.text))
        return outcome

    def buy_auto(self, quantity: int, gate: AdmissionGate) -> Tuple[DrawWindow, PurchaseOutcome]:
        """Run the whole purchase for ``quantity`` automatic games."""
        check_quantity(quantity)
        if not self._client.authenticated:
            raise AuthenticationError("purchase requires a logged-in session")
        window = self.fetch_draw_window()
        admission = gate.admit()
        # Reload the purchase page so the session is fresh right before buying.
        self._client.request("GET", self._client.site.purchase_page)
        request = build_request(window, admission, quantity)
        return window, self.submit(request, window)

