import json
import logging
import unittest
from unittest import mock

from dhlotto.config import SiteSettings
from dhlotto.errors import (
    AuthenticationError,
    MissingPurchaseContext,
    ParseError,
    ProtocolError,
    QuantityOutOfRange,
    QueueWaitError,
)
from dhlotto.purchase import (
    PurchaseExecutor,
    build_request,
    check_quantity,
    classify_purchase,
    form_data,
    interpret_purchase_body,
    parse_line,
)
from dhlotto.types import (
    Accepted,
    DeviceNotAllowed,
    DirectRoute,
    DrawWindow,
    GenMode,
    OutsideSaleWindow,
    Rejected,
    SessionExpired,
    UnknownAdmission,
)

PURCHASE_PAGE = """
<html><body>
<span id="curRound">1150</span>
<input type="hidden" id="ROUND_DRAW_DATE" value="2024/12/14">
<input type="hidden" id="WAMT_PAY_TLMT_END_DT" value="2025/12/15">
<span id="moneyBalance">20,000</span>
</body></html>
"""


def _response(text: str = "", status_code: int = 200) -> mock.Mock:
    response = mock.Mock()
    response.text = text
    response.status_code = status_code
    return response


class ParseLineTests(unittest.TestCase):
    def test_plain_line_uses_positional_slot(self) -> None:
        line = parse_line("3|7|12|20|33|41|3", index=1)

        self.assertEqual(line.slot, "B")
        self.assertEqual(tuple(line.numbers), (3, 7, 12, 20, 33, 41))
        self.assertEqual(line.gen_mode, GenMode.AUTO)

    def test_slot_letter_prefix_and_glued_mode_digit(self) -> None:
        line = parse_line("A|20|21|27|29|30|383")

        self.assertEqual(line.slot, "A")
        self.assertEqual(tuple(line.numbers), (20, 21, 27, 29, 30, 38))
        self.assertEqual(line.gen_mode, GenMode.AUTO)

    def test_manual_mode_digit(self) -> None:
        self.assertEqual(parse_line("1|2|3|4|5|6|1").gen_mode, GenMode.MANUAL)

    def test_wrong_number_count_raises(self) -> None:
        with self.assertRaises(ParseError):
            parse_line("1|2|3|4|5|3")

    def test_out_of_range_number_raises(self) -> None:
        with self.assertRaises(ParseError):
            parse_line("1|2|3|4|5|46|3")

    def test_unknown_mode_digit_raises(self) -> None:
        with self.assertRaises(ParseError):
            parse_line("1|2|3|4|5|6|9")


class ClassifyPurchaseTests(unittest.TestCase):
    def test_session_flag_wins_over_failing_result_code(self) -> None:
        payload = {"loginYn": "N", "isAllowed": "N", "result": {"resultCode": "-1", "resultMsg": "error"}}

        self.assertEqual(classify_purchase(payload), SessionExpired())

    def test_device_not_allowed(self) -> None:
        self.assertEqual(classify_purchase({"loginYn": "Y", "isAllowed": "N"}), DeviceNotAllowed())

    def test_outside_sale_window_requires_explicit_false(self) -> None:
        self.assertEqual(classify_purchase({"checkOltSaleTime": False}), OutsideSaleWindow())
        self.assertEqual(classify_purchase({"checkOltSaleTime": None}), Rejected(code="", message=""))

    def test_success_collects_lines_and_receipt(self) -> None:
        payload = {
            "loginYn": "Y",
            "result": {
                "resultCode": "100",
                "arrGameChoiceNum": ["A|01|02|03|04|05|063", "B|10|11|12|13|14|153"],
                "drawDate": "2024/12/14",
                "payLimitDate": "2025/12/15",
                "barCode": ["1234", "5678"],
            },
        }

        outcome = classify_purchase(payload)

        self.assertIsInstance(outcome, Accepted)
        self.assertEqual([line.slot for line in outcome.lines], ["A", "B"])
        self.assertEqual(tuple(outcome.lines[1].numbers), (10, 11, 12, 13, 14, 15))
        self.assertEqual(outcome.draw_date, "2024/12/14")
        self.assertEqual(outcome.pay_deadline, "2025/12/15")
        self.assertEqual(tuple(outcome.barcodes), ("1234", "5678"))

    def test_unreadable_line_is_skipped_not_fatal(self) -> None:
        payload = {"result": {"resultCode": "100", "arrGameChoiceNum": ["garbage", "1|2|3|4|5|6|3"]}}

        with self.assertLogs("dhlotto.purchase", level=logging.WARNING):
            outcome = classify_purchase(payload)

        self.assertIsInstance(outcome, Accepted)
        self.assertEqual(len(outcome.lines), 1)

    def test_single_string_line_is_accepted(self) -> None:
        payload = {"result": {"resultCode": "100", "arrGameChoiceNum": "A|01|02|03|04|05|063"}}

        outcome = classify_purchase(payload)

        self.assertEqual(len(outcome.lines), 1)
        self.assertEqual(tuple(outcome.lines[0].numbers), (1, 2, 3, 4, 5, 6))

    def test_rejection_keeps_code_and_message(self) -> None:
        payload = {"result": {"resultCode": "-7", "resultMsg": "구매 한도를 초과하였습니다"}}

        self.assertEqual(classify_purchase(payload), Rejected(code="-7", message="구매 한도를 초과하였습니다"))

    def test_html_body_counts_as_expired_session(self) -> None:
        self.assertEqual(interpret_purchase_body("<!DOCTYPE html><html>login</html>"), SessionExpired())

    def test_other_non_json_body_raises_parse_error(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            interpret_purchase_body("service unavailable")
        self.assertEqual(ctx.exception.snippet, "service unavailable")


class BuildRequestTests(unittest.TestCase):
    def setUp(self) -> None:
        self.window = DrawWindow(round="1150", draw_date="2024/12/14", sale_end="2025/12/15")

    def test_quantity_bounds(self) -> None:
        for bad in (0, 6, -1, True, "3"):
            with self.assertRaises(QuantityOutOfRange):
                check_quantity(bad)
        self.assertEqual(check_quantity(5), 5)

    def test_request_uses_first_slots_and_direct_route(self) -> None:
        request = build_request(self.window, DirectRoute(ip="10.0.0.1"), 3)

        self.assertEqual([spec.slot for spec in request.line_specs], ["A", "B", "C"])
        self.assertEqual(request.direct_route, "10.0.0.1")
        self.assertEqual(request.amount, 3000)

    def test_unknown_admission_sends_empty_route(self) -> None:
        self.assertEqual(build_request(self.window, UnknownAdmission(), 1).direct_route, "")

    def test_form_data_fields(self) -> None:
        form = form_data(build_request(self.window, DirectRoute(ip=""), 2), self.window)

        self.assertEqual(form["round"], "1150")
        self.assertEqual(form["nBuyAmount"], "2000")
        self.assertEqual(form["gameCnt"], "2")
        self.assertEqual(form["ROUND_DRAW_DATE"], "2024/12/14")
        self.assertEqual(form["WAMT_PAY_TLMT_END_DT"], "2025/12/15")
        self.assertEqual(
            json.loads(form["param"]),
            [
                {"genType": "0", "arrGameChoiceNum": None, "alpabet": "A"},
                {"genType": "0", "arrGameChoiceNum": None, "alpabet": "B"},
            ],
        )


class PurchaseExecutorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = mock.Mock()
        self.client.site = SiteSettings()
        self.client.logger = logging.getLogger("dhlotto.test")
        self.executor = PurchaseExecutor(self.client)

    def test_fetch_draw_window_reads_hidden_fields(self) -> None:
        self.client.request.return_value = _response(PURCHASE_PAGE)

        window = self.executor.fetch_draw_window()

        self.assertEqual(window, DrawWindow(round="1150", draw_date="2024/12/14", sale_end="2025/12/15"))

    def test_missing_round_raises(self) -> None:
        self.client.request.return_value = _response("<html><body>maintenance</body></html>")

        with self.assertRaises(MissingPurchaseContext):
            self.executor.fetch_draw_window()

    def test_short_game_page_raises(self) -> None:
        self.client.request.return_value = _response("<html></html>")

        with self.assertRaises(ProtocolError):
            self.executor.open_game_page()

    def test_buy_auto_submits_after_admission(self) -> None:
        success = json.dumps({"result": {"resultCode": "100", "arrGameChoiceNum": ["1|2|3|4|5|6|3"]}})
        self.client.request.side_effect = [_response(PURCHASE_PAGE), _response(PURCHASE_PAGE), _response(success)]
        gate = mock.Mock()
        gate.admit.return_value = DirectRoute(ip="")

        window, outcome = self.executor.buy_auto(1, gate)

        self.assertEqual(window.round, "1150")
        self.assertIsInstance(outcome, Accepted)
        method, url = self.client.request.call_args_list[-1].args[:2]
        self.assertEqual((method, url), ("POST", self.client.site.purchase_action_url))
        self.assertEqual(self.client.request.call_args_list[-1].kwargs["data"]["nBuyAmount"], "1000")

    def test_buy_auto_stops_when_queued(self) -> None:
        self.client.request.return_value = _response(PURCHASE_PAGE)
        gate = mock.Mock()
        gate.admit.side_effect = QueueWaitError(12, 30)

        with self.assertRaises(QueueWaitError):
            self.executor.buy_auto(5, gate)

        posted = [c for c in self.client.request.call_args_list if c.args[0] == "POST"]
        self.assertEqual(posted, [])

    def test_buy_auto_rejects_quantity_before_any_request(self) -> None:
        with self.assertRaises(QuantityOutOfRange):
            self.executor.buy_auto(6, mock.Mock())
        self.client.request.assert_not_called()

    def test_buy_auto_requires_login(self) -> None:
        self.client.authenticated = False

        with self.assertRaises(AuthenticationError):
            self.executor.buy_auto(1, mock.Mock())
        self.client.request.assert_not_called()


if __name__ == "__main__":
    unittest.main()
