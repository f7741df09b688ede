from __future__ import annotations

import getpass
import json
import logging
import os
import pathlib
from dataclasses import dataclass, field, replace
from functools import lru_cache
from typing import Callable, List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError
from .types import Credentials, check_quantity

DEFAULT_CONFIG_FILE = "config.json"


def _bool_from_env(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    return int(value)


@dataclass(frozen=True)
class Account:
    user_id: str
    password: str = field(repr=False)

    def credentials(self) -> Credentials:
        return Credentials(identifier=self.user_id, secret=self.password)


@dataclass(frozen=True)
class TelegramSettings:
    bot_token: str = ""
    chat_id: str = ""
    api_base: str = "https://api.telegram.org"
    timeout_seconds: int = 10

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.chat_id)


@dataclass(frozen=True)
class SiteSettings:
    www_base: str = "https://www.dhlottery.co.kr"
    ol_base: str = "https://ol.dhlottery.co.kr"
    el_base: str = "https://el.dhlottery.co.kr"
    timeout_seconds: int = 30
    max_redirects: int = 10

    @property
    def main_page(self) -> str:
        return f"{self.www_base}/"

    @property
    def login_page(self) -> str:
        return f"{self.www_base}/login"

    @property
    def public_key_url(self) -> str:
        return f"{self.www_base}/login/selectRsaModulus.do"

    @property
    def login_action_url(self) -> str:
        return f"{self.www_base}/login/securityLoginCheck.do"

    @property
    def account_page(self) -> str:
        return f"{self.www_base}/mypage/home"

    @property
    def draw_result_url(self) -> str:
        return f"{self.www_base}/lt645/selectPstLt645Info.do"

    @property
    def game_page(self) -> str:
        return f"{self.el_base}/game/TotalGame.jsp?LottoId=LO40"

    @property
    def purchase_page(self) -> str:
        return f"{self.ol_base}/olotto/game/game645.do"

    @property
    def queue_status_url(self) -> str:
        return f"{self.ol_base}/olotto/game/egovUserReadySocket.json"

    @property
    def purchase_action_url(self) -> str:
        return f"{self.ol_base}/olotto/game/execBuy.do"


@dataclass(frozen=True)
class ScheduleSettings:
    timezone: str = "Asia/Seoul"
    poll_interval_seconds: int = 30


@dataclass(frozen=True)
class LotterySettings:
    accounts: Tuple[Account, ...]
    telegram: TelegramSettings = TelegramSettings()
    site: SiteSettings = SiteSettings()
    schedule: ScheduleSettings = ScheduleSettings()
    quantity: int = 5
    ledger_path: str = "logs/last_purchase.json"
    log_dir: str = "logs"
    min_balance_to_buy: int = 5000
    low_balance_warning: int = 10000
    verbose: bool = False

    def copy(self, **updates) -> "LotterySettings":
        return replace(self, **updates)

    def describe(self, logger: logging.Logger) -> None:
        logger.info("Configured accounts: %d", len(self.accounts))
        for index, account in enumerate(self.accounts, start=1):
            logger.info("  [%d] %s", index, account.credentials().masked())
        logger.info("Telegram notifications: %s", "enabled" if self.telegram.enabled else "disabled")


class _AccountModel(BaseModel):
    user_id: str = Field(..., alias="userId")
    password: str

    @field_validator("user_id")
    @classmethod
    def user_id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("password")
    @classmethod
    def password_not_blank(cls, value: str) -> str:
        # Passwords are encrypted exactly as written.
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class _ConfigFileModel(BaseModel):
    accounts: List[_AccountModel]
    telegram_bot_token: str = Field("", alias="telegramBotToken")
    telegram_chat_id: str = Field("", alias="telegramChatId")

    @field_validator("accounts")
    @classmethod
    def at_least_one(cls, value: List[_AccountModel]) -> List[_AccountModel]:
        if not value:
            raise ValueError("config file contains no accounts")
        return value


def _site_from_environment() -> SiteSettings:
    defaults = SiteSettings()
    return SiteSettings(
        www_base=os.getenv("SITE__WWW_BASE", defaults.www_base).rstrip("/"),
        ol_base=os.getenv("SITE__OL_BASE", defaults.ol_base).rstrip("/"),
        el_base=os.getenv("SITE__EL_BASE", defaults.el_base).rstrip("/"),
        timeout_seconds=_int_from_env(os.getenv("REQUEST_TIMEOUT_SECONDS"), defaults.timeout_seconds),
        max_redirects=_int_from_env(os.getenv("MAX_REDIRECTS"), defaults.max_redirects),
    )


def _quantity_from_env() -> int:
    try:
        return check_quantity(_int_from_env(os.getenv("BUY_QUANTITY"), 5))
    except ValueError as exc:
        raise ConfigError(f"BUY_QUANTITY is invalid: {exc}") from exc


def _with_tuning(accounts: Tuple[Account, ...], telegram: TelegramSettings) -> LotterySettings:
    return LotterySettings(
        accounts=accounts,
        telegram=telegram,
        site=_site_from_environment(),
        schedule=ScheduleSettings(
            timezone=os.getenv("TIMEZONE", "Asia/Seoul"),
            poll_interval_seconds=_int_from_env(os.getenv("POLL_INTERVAL_SECONDS"), 30),
        ),
        quantity=_quantity_from_env(),
        ledger_path=os.getenv("LEDGER_PATH", "logs/last_purchase.json"),
        log_dir=os.getenv("LOG_DIR", "logs"),
        min_balance_to_buy=_int_from_env(os.getenv("MIN_BALANCE_TO_BUY"), 5000),
        low_balance_warning=_int_from_env(os.getenv("LOW_BALANCE_WARNING"), 10000),
        verbose=_bool_from_env(os.getenv("VERBOSE"), False),
    )


def load_from_environment() -> LotterySettings:
    user_id = os.getenv("DH_LOTTERY_ID", "")
    password = os.getenv("DH_LOTTERY_PW", "")
    if not user_id or not password:
        raise ConfigError("DH_LOTTERY_ID and DH_LOTTERY_PW are not set")

    telegram = TelegramSettings(
        bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        chat_id=os.getenv("TELEGRAM_CHAT_ID", ""),
    )
    return _with_tuning((Account(user_id=user_id, password=password),), telegram)


def load_from_file(path: str = DEFAULT_CONFIG_FILE) -> LotterySettings:
    config_path = pathlib.Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
        parsed = _ConfigFileModel.model_validate(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file is not valid JSON: {config_path}") from exc
    except ValidationError as exc:
        raise ConfigError(f"Invalid config file {config_path}: {exc}") from exc

    accounts = tuple(Account(user_id=item.user_id, password=item.password) for item in parsed.accounts)
    telegram = TelegramSettings(bot_token=parsed.telegram_bot_token, chat_id=parsed.telegram_chat_id)
    return _with_tuning(accounts, telegram)


def load_interactive(
    prompt: Callable[[str], str] = input,
    secret_prompt: Callable[[str], str] = getpass.getpass,
) -> LotterySettings:
    user_id = prompt("dhlottery user id: ").strip()
    password = secret_prompt("password: ")
    if not user_id or not password.strip():
        raise ConfigError("Both user id and password are required")
    return _with_tuning((Account(user_id=user_id, password=password),), TelegramSettings())


@lru_cache(maxsize=1)
def load_config(
    dotenv_path: Optional[str] = None,
    config_file: str = DEFAULT_CONFIG_FILE,
    interactive: bool = True,
) -> LotterySettings:
    """Load settings from the environment, then ``config_file``, then a prompt."""
    logger = logging.getLogger("dhlotto.config")
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        default_path = pathlib.Path(".env")
        if default_path.exists():
            load_dotenv(default_path)

    try:
        return load_from_environment()
    except ConfigError as exc:
        logger.info("Environment config unavailable: %s", exc)

    try:
        return load_from_file(config_file)
    except ConfigError as exc:
        logger.info("File config unavailable: %s", exc)

    if not interactive:
        raise ConfigError("No account configuration found in environment or config file")
    return load_interactive()
