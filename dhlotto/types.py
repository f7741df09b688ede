from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple, Union

from .errors import QuantityOutOfRange

SLOTS: Tuple[str, ...] = ("A", "B", "C", "D", "E")
UNIT_PRICE = 1000
MIN_NUMBER = 1
MAX_NUMBER = 45
MAX_QUANTITY = len(SLOTS)


class GenMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"
    SEMI_AUTO = "semi_auto"

    @property
    def label(self) -> str:
        return {
            GenMode.AUTO: "auto",
            GenMode.MANUAL: "manual",
            GenMode.SEMI_AUTO: "semi-auto",
        }[self]


def check_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or not 1 <= quantity <= MAX_QUANTITY:
        raise QuantityOutOfRange(f"quantity must be between 1 and {MAX_QUANTITY}, got {quantity!r}")
    return quantity


# Trailing digit of a purchased line string.
GEN_MODE_DIGITS: Dict[str, GenMode] = {
    "3": GenMode.AUTO,
    "1": GenMode.MANUAL,
    "2": GenMode.SEMI_AUTO,
}


@dataclass(frozen=True)
class Credentials:
    identifier: str
    secret: str = field(repr=False)

    def masked(self) -> str:
        return f"{self.identifier} / {'*' * len(self.secret)}"


@dataclass(frozen=True)
class RSAPublicKeyMaterial:
    modulus_hex: str
    exponent_hex: str


@dataclass(frozen=True)
class DrawWindow:
    round: str
    draw_date: str
    sale_end: str = ""


@dataclass(frozen=True)
class DirectRoute:
    ip: str


@dataclass(frozen=True)
class Queued:
    count: int
    eta_seconds: Optional[int] = None


@dataclass(frozen=True)
class UnknownAdmission:
    pass


AdmissionDecision = Union[DirectRoute, Queued, UnknownAdmission]


@dataclass(frozen=True)
class LineSpec:
    slot: str
    mode: GenMode = GenMode.AUTO

    def to_param(self) -> Dict[str, Optional[str]]:
        return {"genType": "0", "arrGameChoiceNum": None, "alpabet": self.slot}


@dataclass(frozen=True)
class PurchaseRequest:
    round: str
    direct_route: str
    quantity: int
    line_specs: Sequence[LineSpec]

    @property
    def amount(self) -> int:
        return self.quantity * UNIT_PRICE


@dataclass(frozen=True)
class PurchasedLine:
    slot: str
    numbers: Sequence[int]
    gen_mode: GenMode


@dataclass(frozen=True)
class SessionExpired:
    pass


@dataclass(frozen=True)
class DeviceNotAllowed:
    pass


@dataclass(frozen=True)
class OutsideSaleWindow:
    pass


@dataclass(frozen=True)
class Rejected:
    code: str
    message: str = ""


@dataclass(frozen=True)
class Accepted:
    lines: Sequence[PurchasedLine]
    draw_date: str = ""
    pay_deadline: str = ""
    barcodes: Sequence[str] = ()


PurchaseOutcome = Union[SessionExpired, DeviceNotAllowed, OutsideSaleWindow, Rejected, Accepted]


@dataclass(frozen=True)
class DrawResult:
    round: str
    draw_date: str
    numbers: Sequence[int]
    bonus: int


@dataclass(frozen=True)
class RankOutcome:
    rank: int
    match_count: int
    bonus_matched: bool

    @property
    def is_winner(self) -> bool:
        return self.rank > 0
