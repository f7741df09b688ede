from __future__ import annotations

import json
import logging
import os
import pathlib
import threading
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import ParseError
from .types import Accepted, PurchaseOutcome

_LOCKS: Dict[str, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: pathlib.Path) -> threading.Lock:
    key = str(path.resolve())
    with _LOCKS_GUARD:
        return _LOCKS.setdefault(key, threading.Lock())


class GameRecord(BaseModel):
    slot: str
    numbers: List[int]


class UserPurchase(BaseModel):
    success: bool = False
    games: List[GameRecord] = Field(default_factory=list)


class LedgerEntry(BaseModel):
    round: str
    purchase_date: str = Field("", alias="purchaseDate")
    users: Dict[str, UserPurchase] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


def user_purchase_from(outcome: PurchaseOutcome) -> UserPurchase:
    if isinstance(outcome, Accepted):
        return UserPurchase(
            success=True,
            games=[GameRecord(slot=line.slot, numbers=list(line.numbers)) for line in outcome.lines],
        )
    return UserPurchase(success=False, games=[])


class PurchaseLedger:
    """Round-scoped record of what each account bought.

    The file only ever holds one round. Saving for a new round drops the
    previous round; saving within the same round upserts a single user.
    """

    def __init__(self, path: str, logger: Optional[logging.Logger] = None) -> None:
        self._path = pathlib.Path(path)
        self._logger = logger or logging.getLogger("dhlotto.ledger")
        self._lock = _lock_for(self._path)

    @property
    def path(self) -> pathlib.Path:
        return self._path

    def load(self) -> Optional[LedgerEntry]:
        if not self._path.exists():
            return None
        text = self._path.read_text(encoding="utf-8")
        try:
            return LedgerEntry.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ParseError(f"ledger file {self._path} is unreadable", text) from exc

    def save(self, user_id: str, round_id: str, purchase_date: str, outcome: PurchaseOutcome) -> LedgerEntry:
        with self._lock:
            try:
                existing = self.load()
            except ParseError as exc:
                self._logger.warning("Discarding unreadable ledger: %s", exc)
                existing = None

            if existing is not None and existing.round == round_id:
                entry = existing
            else:
                if existing is not None:
                    self._logger.info("Ledger round %s replaced by round %s", existing.round, round_id)
                entry = LedgerEntry(round=round_id, purchase_date=purchase_date)

            entry.users[user_id] = user_purchase_from(outcome)
            self._write(entry)
            return entry

    def _write(self, entry: LedgerEntry) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = entry.model_dump(by_alias=True)
        temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with temp_path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
        os.replace(temp_path, self._path)
