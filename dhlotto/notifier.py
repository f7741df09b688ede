from __future__ import annotations

import logging
from typing import Optional, Protocol

import requests

from .config import TelegramSettings
from .errors import NotifierError, snippet


class Notifier(Protocol):
    def send(self, text: str) -> None:
        ...

    def send_safe(self, text: str) -> bool:
        ...


class NullNotifier:
    """Used when no notification channel is configured."""

    def send(self, text: str) -> None:
        return None

    def send_safe(self, text: str) -> bool:
        return False


class TelegramNotifier:
    def __init__(
        self,
        settings: TelegramSettings,
        logger: Optional[logging.Logger] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._settings = settings
        self._logger = logger or logging.getLogger("dhlotto.notifier")
        self._session = session or requests.Session()

    def send(self, text: str) -> None:
        url = f"{self._settings.api_base}/bot{self._settings.bot_token}/sendMessage"
        payload = {"chat_id": self._settings.chat_id, "text": text, "parse_mode": "HTML"}
        try:
            resp = self._session.post(url, json=payload, timeout=self._settings.timeout_seconds)
        except requests.RequestException as exc:
            raise NotifierError(f"telegram request failed: {exc}") from exc
        if resp.status_code != 200:
            raise NotifierError(f"telegram returned {resp.status_code}: {snippet(resp.text, 200)}")
        self._logger.info("Telegram message sent")

    def send_safe(self, text: str) -> bool:
        """Send ``text``; delivery failures are logged and never raised."""
        try:
            self.send(text)
        except NotifierError as exc:
            self._logger.warning("Telegram delivery failed: %s", exc)
            return False
        return True


def build_notifier(settings: TelegramSettings, logger: Optional[logging.Logger] = None) -> Notifier:
    if settings.enabled:
        return TelegramNotifier(settings, logger=logger)
    return NullNotifier()
