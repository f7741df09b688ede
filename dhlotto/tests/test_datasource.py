import unittest
from unittest import mock

import requests

from dhlotto.datasource import HttpJsonDrawSource, HttpJsonDrawSourceConfig
from dhlotto.errors import ParseError, ProtocolError, TransportError

PAYLOAD = {
    "data": {
        "list": [
            {
                "ltEpsd": 1150,
                "ltRflYmd": "20241214",
                "tm1WnNo": 8,
                "tm2WnNo": 9,
                "tm3WnNo": 18,
                "tm4WnNo": 35,
                "tm5WnNo": 39,
                "tm6WnNo": 45,
                "bnsWnNo": 25,
            }
        ]
    }
}


class HttpJsonDrawSourceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.session = mock.Mock()
        self.response = mock.Mock()
        self.session.get.return_value = self.response
        self.source = HttpJsonDrawSource(HttpJsonDrawSourceConfig(url="http://draws.test"), session=self.session)

    def test_parses_latest_draw(self) -> None:
        self.response.json.return_value = PAYLOAD

        draw = self.source.fetch_latest()

        self.assertEqual(draw.round, "1150")
        self.assertEqual(draw.draw_date, "2024-12-14")
        self.assertEqual(tuple(draw.numbers), (8, 9, 18, 35, 39, 45))
        self.assertEqual(draw.bonus, 25)
        self.session.get.assert_called_once_with("http://draws.test", timeout=30)

    def test_empty_list_is_protocol_error(self) -> None:
        self.response.json.return_value = {"data": {"list": []}}

        with self.assertRaises(ProtocolError):
            self.source.fetch_latest()

    def test_missing_number_is_protocol_error(self) -> None:
        item = dict(PAYLOAD["data"]["list"][0])
        del item["tm6WnNo"]
        self.response.json.return_value = {"data": {"list": [item]}}

        with self.assertRaises(ProtocolError):
            self.source.fetch_latest()

    def test_out_of_range_number_is_protocol_error(self) -> None:
        item = dict(PAYLOAD["data"]["list"][0], bnsWnNo=46)
        self.response.json.return_value = {"data": {"list": [item]}}

        with self.assertRaises(ProtocolError):
            self.source.fetch_latest()

    def test_non_json_is_parse_error(self) -> None:
        self.response.json.side_effect = ValueError("bad")
        self.response.text = "<html></html>"

        with self.assertRaises(ParseError):
            self.source.fetch_latest()

    def test_connection_failure_is_transport_error(self) -> None:
        self.session.get.side_effect = requests.ConnectionError("down")

        with self.assertRaises(TransportError):
            self.source.fetch_latest()

    def test_close_closes_session(self) -> None:
        self.source.close()

        self.session.close.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
