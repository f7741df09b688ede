from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from .admission import AdmissionGate
from .client import LotteryClient
from .config import Account, LotterySettings
from .datasource import DrawResultSource, HttpJsonDrawSource, HttpJsonDrawSourceConfig
from .errors import InsufficientBalance, LotteryError, ParseError
from .formatter import describe_outcome, format_balance_warning, format_failure, format_money, format_outcome
from .ledger import PurchaseLedger
from .notifier import NullNotifier, Notifier
from .purchase import PurchaseExecutor
from .types import PurchaseOutcome, check_quantity
from .winning import format_winning_message


@dataclass
class AccountResult:
    user_id: str
    ok: bool
    error: Optional[str] = None
    balance: Optional[int] = None
    outcome: Optional[PurchaseOutcome] = None
    message: Optional[str] = None


class LotteryTasks:
    """Task entry points invoked by the CLI and the scheduler.

    Accounts are processed one after another with a fresh client each; a
    failure for one account is logged and reported, then the next account runs.
    """

    def __init__(
        self,
        settings: LotterySettings,
        notifier: Optional[Notifier] = None,
        logger: Optional[logging.Logger] = None,
        client_factory: Optional[Callable[[], LotteryClient]] = None,
        draw_source_factory: Optional[Callable[[], DrawResultSource]] = None,
        ledger: Optional[PurchaseLedger] = None,
        today: Optional[Callable[[], dt.date]] = None,
    ) -> None:
        self._settings = settings
        self._notifier = notifier or NullNotifier()
        self._logger = logger or logging.getLogger("dhlotto.tasks")
        self._client_factory = client_factory or (lambda: LotteryClient(settings.site, logger=self._logger))
        self._draw_source_factory = draw_source_factory or self._default_draw_source
        self._ledger = ledger or PurchaseLedger(settings.ledger_path, logger=self._logger)
        self._today = today or self._local_today

    def _default_draw_source(self) -> DrawResultSource:
        site = self._settings.site
        config = HttpJsonDrawSourceConfig(url=site.draw_result_url, timeout_seconds=site.timeout_seconds)
        return HttpJsonDrawSource(config, logger=self._logger)

    def _local_today(self) -> dt.date:
        return dt.datetime.now(ZoneInfo(self._settings.schedule.timezone)).date()

    def _run_for_accounts(
        self, title: str, step: Callable[[Account, AccountResult], None]
    ) -> List[AccountResult]:
        accounts = self._settings.accounts
        self._logger.info("=== %s (%d account(s)) ===", title, len(accounts))
        results: List[AccountResult] = []
        for index, account in enumerate(accounts, start=1):
            self._logger.info("--- account %d/%d: %s ---", index, len(accounts), account.user_id)
            result = AccountResult(user_id=account.user_id, ok=False)
            try:
                step(account, result)
                result.ok = True
            except InsufficientBalance as exc:
                result.error = str(exc)
                self._logger.warning("%s skipped for %s: %s", title, account.user_id, exc)
                self._notifier.send_safe(
                    format_balance_warning(account.user_id, exc.balance, exc.required)
                )
            except LotteryError as exc:
                result.error = str(exc)
                self._logger.error("%s failed for %s: %s", title, account.user_id, exc)
                self._notifier.send_safe(format_failure(account.user_id, f"{title} failed", exc))
            except Exception as exc:
                result.error = str(exc)
                self._logger.exception("%s crashed for %s: %s", title, account.user_id, exc)
                self._notifier.send_safe(format_failure(account.user_id, f"{title} failed", exc))
            results.append(result)
        self._logger.info("=== %s finished ===", title)
        return results

    def _purchase(self, client: LotteryClient, account: Account, result: AccountResult) -> None:
        executor = PurchaseExecutor(client, logger=self._logger)
        gate = AdmissionGate(client, logger=self._logger)
        executor.open_game_page()

        quantity = self._settings.quantity
        window, outcome = executor.buy_auto(quantity, gate)
        result.outcome = outcome
        describe_outcome(outcome, self._logger)

        try:
            self._ledger.save(account.user_id, window.round, self._today().isoformat(), outcome)
        except OSError as exc:
            self._logger.error("Could not write purchase ledger %s: %s", self._ledger.path, exc)

        result.message = format_outcome(account.user_id, outcome, quantity)
        self._notifier.send_safe(result.message)

    def check_balance(self) -> List[AccountResult]:
        threshold = self._settings.low_balance_warning

        def step(account: Account, result: AccountResult) -> None:
            with self._client_factory() as client:
                client.login(account.credentials())
                result.balance = client.check_balance()
            if result.balance is None or result.balance < threshold:
                self._logger.warning(
                    "Balance for %s below %s won: %s",
                    account.user_id,
                    format_money(threshold),
                    "unknown" if result.balance is None else format_money(result.balance),
                )
                self._notifier.send_safe(format_balance_warning(account.user_id, result.balance, threshold))

        return self._run_for_accounts("Balance check", step)

    def buy_lotto(self) -> List[AccountResult]:
        def step(account: Account, result: AccountResult) -> None:
            check_quantity(self._settings.quantity)
            with self._client_factory() as client:
                client.login(account.credentials())
                self._purchase(client, account, result)

        return self._run_for_accounts("Lotto purchase", step)

    def check_balance_and_buy(self) -> List[AccountResult]:
        required = self._settings.min_balance_to_buy
        warning = self._settings.low_balance_warning

        def step(account: Account, result: AccountResult) -> None:
            check_quantity(self._settings.quantity)
            with self._client_factory() as client:
                client.login(account.credentials())
                result.balance = client.check_balance()
                if result.balance is None or result.balance < required:
                    raise InsufficientBalance(result.balance, required)
                if result.balance < warning:
                    self._notifier.send_safe(format_balance_warning(account.user_id, result.balance, warning))
                self._purchase(client, account, result)

        return self._run_for_accounts("Balance check and purchase", step)

    def dry_run(self) -> List[AccountResult]:
        def step(account: Account, result: AccountResult) -> None:
            with self._client_factory() as client:
                client.login(account.credentials())
                result.balance = client.check_balance()
                PurchaseExecutor(client, logger=self._logger).open_game_page()
            self._logger.info("Dry run complete for %s; nothing was purchased", account.user_id)

        return self._run_for_accounts("Dry run", step)

    def check_winning(self) -> List[AccountResult]:
        self._logger.info("=== Winning check ===")
        source = self._draw_source_factory()
        try:
            draw = source.fetch_latest()
        except LotteryError as exc:
            self._logger.error("Could not fetch the latest draw: %s", exc)
            self._notifier.send_safe(f"❌ <b>Winning check failed</b>\n\n{exc}")
            return [AccountResult(user_id=account.user_id, ok=False, error=str(exc)) for account in self._settings.accounts]
        finally:
            source.close()

        try:
            ledger = self._ledger.load()
        except ParseError as exc:
            self._logger.error("Purchase ledger unreadable: %s", exc)
            ledger = None

        results: List[AccountResult] = []
        for account in self._settings.accounts:
            message = format_winning_message(account.user_id, draw, ledger)
            self._logger.info("Winning check for %s:\n%s", account.user_id, message)
            self._notifier.send_safe(message)
            results.append(AccountResult(user_id=account.user_id, ok=True, message=message))
        return results
