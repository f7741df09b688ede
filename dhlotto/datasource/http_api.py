from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import requests

from ..errors import ParseError, ProtocolError, TransportError
from ..types import MAX_NUMBER, MIN_NUMBER, DrawResult
from .base import DrawResultSource


@dataclass(frozen=True)
class HttpJsonDrawSourceConfig:
    """Where the result list lives and which keys hold each field."""

    url: str
    round_key: str = "ltEpsd"
    date_key: str = "ltRflYmd"
    number_keys: Sequence[str] = ("tm1WnNo", "tm2WnNo", "tm3WnNo", "tm4WnNo", "tm5WnNo", "tm6WnNo")
    bonus_key: str = "bnsWnNo"
    timeout_seconds: int = 30


class HttpJsonDrawSource(DrawResultSource):
    """Fetch the latest Lotto 6/45 result from the public JSON endpoint."""

    def __init__(
        self,
        config: HttpJsonDrawSourceConfig,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._logger = logger or logging.getLogger("dhlotto.datasource")

    def fetch_latest(self) -> DrawResult:
        payload = self._get_json(self._config.url, self._config.timeout_seconds)
        draw = self._parse_payload(payload)
        self._logger.info(
            "Draw %s (%s): %s + bonus %s", draw.round, draw.draw_date, list(draw.numbers), draw.bonus
        )
        return draw

    def close(self) -> None:
        self._session.close()

    def _get_json(self, url: str, timeout_seconds: int) -> Mapping[str, Any]:
        try:
            resp = self._session.get(url, timeout=timeout_seconds)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise TransportError(f"draw result request failed: {exc}") from exc
        try:
            data = resp.json()
        except ValueError as exc:
            raise ParseError("draw result response is not JSON", resp.text) from exc
        if not isinstance(data, Mapping):
            raise ParseError("draw result response is not a JSON object", resp.text)
        return data

    def _parse_payload(self, payload: Mapping[str, Any]) -> DrawResult:
        cfg = self._config
        data = payload.get("data")
        items = data.get("list") if isinstance(data, Mapping) else None
        if not isinstance(items, list) or not items or not isinstance(items[0], Mapping):
            raise ProtocolError("draw result list is empty")
        item = items[0]

        try:
            round_id = str(int(item[cfg.round_key]))
            numbers = tuple(self._parse_number(item[key]) for key in cfg.number_keys)
            bonus = self._parse_number(item[cfg.bonus_key])
        except KeyError as exc:
            raise ProtocolError(f"draw result is missing field {exc.args[0]}") from exc
        except (TypeError, ValueError) as exc:
            raise ProtocolError(f"draw result has a malformed field: {exc}") from exc

        return DrawResult(
            round=round_id,
            draw_date=self._parse_date(item.get(cfg.date_key)),
            numbers=numbers,
            bonus=bonus,
        )

    @staticmethod
    def _parse_number(raw: Any) -> int:
        if isinstance(raw, bool):
            raise ValueError("boolean is not a draw number")
        number = int(raw)
        if not MIN_NUMBER <= number <= MAX_NUMBER:
            raise ValueError(f"draw number out of range: {number}")
        return number

    @staticmethod
    def _parse_date(raw: Any) -> str:
        text = "" if raw is None else str(raw).strip()
        # YYYYMMDD -> YYYY-MM-DD
        if len(text) == 8 and text.isdigit():
            return f"{text[0:4]}-{text[4:6]}-{text[6:8]}"
        return text
