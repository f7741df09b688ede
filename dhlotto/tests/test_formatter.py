import logging
import unittest

from dhlotto.formatter import (
    describe_outcome,
    format_balance_warning,
    format_money,
    format_outcome,
    rejection_hint,
)
from dhlotto.types import Accepted, DeviceNotAllowed, GenMode, OutsideSaleWindow, PurchasedLine, Rejected, SessionExpired


class FormatterTests(unittest.TestCase):
    def test_format_money(self) -> None:
        self.assertEqual(format_money(5000), "5,000")
        self.assertEqual(format_money(0), "0")
        self.assertEqual(format_money(1234567), "1,234,567")

    def test_rejection_hints_in_order(self) -> None:
        self.assertIn("limit", rejection_hint("구매 한도 5000원 초과"))
        self.assertIn("balance", rejection_hint("예치금이 부족합니다"))
        self.assertIn("sale hours", rejection_hint("판매 시간이 아닙니다"))
        self.assertEqual(rejection_hint("알 수 없는 오류"), "")

    def test_success_message_lists_lines(self) -> None:
        outcome = Accepted(
            lines=(PurchasedLine(slot="A", numbers=(3, 7, 12, 20, 33, 41), gen_mode=GenMode.AUTO),),
            draw_date="2024/12/14",
        )

        message = format_outcome("alice", outcome, 1)

        self.assertIn("(alice)", message)
        self.assertIn("1,000 won", message)
        self.assertIn("3 - 7 - 12 - 20 - 33 - 41", message)
        self.assertIn("Draw date: 2024/12/14", message)

    def test_each_failure_outcome_has_its_own_message(self) -> None:
        outcomes = [SessionExpired(), DeviceNotAllowed(), OutsideSaleWindow(), Rejected(code="-7", message="예치금 부족")]

        messages = [format_outcome("alice", outcome, 5) for outcome in outcomes]

        self.assertEqual(len(set(messages)), 4)
        self.assertIn("Top up", messages[-1])

    def test_balance_warning_distinguishes_unknown(self) -> None:
        self.assertIn("unknown", format_balance_warning("alice", None, 10000))
        self.assertIn("3,000 won", format_balance_warning("alice", 3000, 10000))

    def test_describe_outcome_logs_receipt(self) -> None:
        outcome = Accepted(
            lines=(PurchasedLine(slot="A", numbers=(1, 2, 3, 4, 5, 6), gen_mode=GenMode.AUTO),),
            pay_deadline="2025/12/15",
            barcodes=("111", "222"),
        )

        with self.assertLogs("dhlotto.formatter", level=logging.INFO) as logs:
            describe_outcome(outcome)

        output = "\n".join(logs.output)
        self.assertIn("1 game(s)", output)
        self.assertIn("2025/12/15", output)
        self.assertIn("111 222", output)


if __name__ == "__main__":
    unittest.main()
