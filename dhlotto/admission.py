from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from .client import LotteryClient
from .errors import ParseError, QueueWaitError
from .types import AdmissionDecision, DirectRoute, Queued, UnknownAdmission


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def decide_admission(payload: Mapping[str, Any]) -> AdmissionDecision:
    waiting = _as_int(payload.get("ready_cnt"))
    if waiting is not None and waiting > 0:
        return Queued(count=waiting, eta_seconds=_as_int(payload.get("ready_time")))
    ready_ip = payload.get("ready_ip")
    if isinstance(ready_ip, str):
        return DirectRoute(ip=ready_ip)
    return UnknownAdmission()


def direct_route_of(decision: AdmissionDecision) -> str:
    if isinstance(decision, DirectRoute):
        return decision.ip
    return ""


class AdmissionGate:
    """Probe the virtual waiting room that guards the purchase endpoint."""

    def __init__(self, client: LotteryClient, logger: Optional[logging.Logger] = None) -> None:
        self._client = client
        self._logger = logger or client.logger

    def check_admission(self) -> AdmissionDecision:
        site = self._client.site
        headers = {
            "Content-Type": "application/json; charset=UTF-8",
            "Referer": site.purchase_page,
            "X-Requested-With": "XMLHttpRequest",
        }
        response = self._client.request("POST", site.queue_status_url, headers=headers)
        try:
            payload = response.json()
        except ValueError as exc:
            raise ParseError("queue status response is not JSON", response.text) from exc
        if not isinstance(payload, Mapping):
            raise ParseError("queue status response is not a JSON object", response.text)

        decision = decide_admission(payload)
        if isinstance(decision, Queued):
            self._logger.warning(
                "Purchase queue: %d waiting, eta %s s", decision.count, decision.eta_seconds
            )
        elif isinstance(decision, DirectRoute):
            self._logger.info("No queue; direct route %s", decision.ip or "(empty)")
        else:
            self._logger.info("Queue status carried no route; submitting without one")
        return decision

    def admit(self) -> AdmissionDecision:
        """Like ``check_admission`` but raise ``QueueWaitError`` when queued."""
        decision = self.check_admission()
        if isinstance(decision, Queued):
            raise QueueWaitError(decision.count, decision.eta_seconds)
        return decision
