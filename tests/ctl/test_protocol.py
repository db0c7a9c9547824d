"""
Tests for ctl/protocol.py - message envelopes, receive buffer and framing.
"""

import json
import unittest

from wayvncctl.ctl.errors import EncodeError, NoData, ProtocolError
from wayvncctl.ctl.protocol import (
    MAX_REQUEST_SIZE,
    Event,
    ReceiveBuffer,
    Request,
    Response,
    decode_one,
)


def _drain(buffer):
    values = []
    while True:
        try:
            values.append(decode_one(buffer))
        except NoData:
            return values


class TestFrameDecoder(unittest.TestCase):
    """Test cases for decode_one against a ReceiveBuffer."""

    def test_empty_buffer_is_no_data(self):
        with self.assertRaises(NoData):
            decode_one(ReceiveBuffer())

    def test_concatenated_messages_with_trailing_partial(self):
        messages = [
            {"code": 0},
            {"method": "client-connected", "params": {"id": "1"}},
            {"code": 1, "data": "nope"},
        ]
        partial = b'{"method":"output-power-o'
        stream = b"".join(json.dumps(m).encode() for m in messages) + partial

        buffer = ReceiveBuffer(1024)
        decoded = []
        # Feed in awkward chunk sizes so messages straddle reads
        for i in range(0, len(stream), 7):
            buffer.append(stream[i:i + 7])
            decoded.extend(_drain(buffer))

        self.assertEqual(decoded, messages)
        self.assertEqual(bytes(buffer), partial)
        with self.assertRaises(NoData):
            decode_one(buffer)
        self.assertEqual(bytes(buffer), partial, "NoData must not consume bytes")

    def test_consumes_only_first_message(self):
        buffer = ReceiveBuffer()
        buffer.append(b'{"code":0} {"code":2}')
        self.assertEqual(decode_one(buffer), {"code": 0})
        self.assertEqual(bytes(buffer), b' {"code":2}')
        self.assertEqual(decode_one(buffer), {"code": 2})
        self.assertEqual(len(buffer), 0)

    def test_brackets_inside_strings(self):
        message = {"method": "x", "params": {"a": '}{"][\\'}}
        buffer = ReceiveBuffer()
        buffer.append(json.dumps(message).encode())
        self.assertEqual(decode_one(buffer), message)

    def test_multibyte_character_split_across_reads(self):
        encoded = json.dumps({"code": 0, "data": "héllo ✓"}, ensure_ascii=False).encode("utf-8")
        split = encoded.index("✓".encode("utf-8")) + 1
        buffer = ReceiveBuffer()
        buffer.append(encoded[:split])
        with self.assertRaises(NoData):
            decode_one(buffer)
        buffer.append(encoded[split:])
        self.assertEqual(decode_one(buffer)["data"], "héllo ✓")

    def test_malformed_message_is_protocol_error(self):
        buffer = ReceiveBuffer()
        buffer.append(b'{"code": 0,}')
        with self.assertRaises(ProtocolError):
            decode_one(buffer)
        self.assertEqual(bytes(buffer), b'{"code": 0,}', "Buffer must be left as-is")

    def test_malformed_content_in_unclosed_message(self):
        """Bad content is reported at once, not after the message closes."""
        for data in (b'{"code":0,,', b'{"code":0 "data"', b'[1,]x', b'{"a":tx'):
            buffer = ReceiveBuffer()
            buffer.append(data)
            with self.assertRaises(ProtocolError, msg=data):
                decode_one(buffer)
            self.assertEqual(bytes(buffer), data)

    def test_message_cut_anywhere_is_no_data(self):
        message = b'{"method":"x","params":{"a":"\\u00e9\\"}","b":[true,false,null,-1.5e+3]}}'
        for cut in range(1, len(message)):
            buffer = ReceiveBuffer()
            buffer.append(message[:cut])
            with self.assertRaises(NoData, msg=message[:cut]):
                decode_one(buffer)
            self.assertEqual(len(buffer), cut, "NoData must not consume bytes")
            buffer.append(message[cut:])
            self.assertEqual(decode_one(buffer)["params"]["a"], 'é"}')

    def test_invalid_utf8_is_protocol_error(self):
        buffer = ReceiveBuffer()
        buffer.append(b'{"data":"\xff\xfe"}')
        with self.assertRaises(ProtocolError):
            decode_one(buffer)

    def test_scalar_top_level_is_protocol_error(self):
        buffer = ReceiveBuffer()
        buffer.append(b"42")
        with self.assertRaises(ProtocolError):
            decode_one(buffer)

    def test_whitespace_only_is_no_data(self):
        buffer = ReceiveBuffer()
        buffer.append(b" \n\t")
        with self.assertRaises(NoData):
            decode_one(buffer)
        self.assertEqual(len(buffer), 0)


class TestReceiveBuffer(unittest.TestCase):
    """Test cases for ReceiveBuffer capacity handling."""

    def test_overflow_is_protocol_error(self):
        buffer = ReceiveBuffer(8)
        buffer.append(b"12345")
        self.assertEqual(buffer.free, 3)
        with self.assertRaises(ProtocolError):
            buffer.append(b"6789")
        self.assertEqual(len(buffer), 5)

    def test_invalid_capacity(self):
        with self.assertRaises(ValueError):
            ReceiveBuffer(0)


class TestRequest(unittest.TestCase):
    """Test cases for Request encoding."""

    def test_round_trip(self):
        request = Request("output-set", {"output-name": "DP-1", "mode": "x"})
        buffer = ReceiveBuffer()
        buffer.append(request.encode())
        decoded = Request.from_json(decode_one(buffer), is_event=False)
        self.assertEqual(decoded.method, "output-set")
        self.assertEqual(decoded.params, {"mode": "x", "output-name": "DP-1"})

    def test_empty_params_encoded(self):
        self.assertEqual(Request("version").encode(), b'{"method":"version","params":{}}')

    def test_local_event_omits_params(self):
        event = Event.event("wayvnc-startup")
        self.assertTrue(event.is_event)
        self.assertEqual(event.to_json(), {"method": "wayvnc-startup"})

    def test_encoding_is_cached(self):
        request = Request("version")
        self.assertIs(request.encode(), request.encode())

    def test_unserializable_params(self):
        with self.assertRaises(EncodeError):
            Request("x", {"a": object()}).encode()

    def test_oversized_request(self):
        with self.assertRaises(EncodeError):
            Request("x", {"a": "y" * MAX_REQUEST_SIZE}).encode()

    def test_empty_method(self):
        with self.assertRaises(EncodeError):
            Request("").encode()

    def test_event_requires_method(self):
        with self.assertRaises(ProtocolError):
            Event.from_json({"params": {}})
        with self.assertRaises(ProtocolError):
            Event.from_json({"method": "x", "params": "nope"})


class TestResponse(unittest.TestCase):
    """Test cases for Response parsing."""

    def test_parse(self):
        response = Response.from_json({"code": 0, "data": {"wayvnc": "0.7.0"}})
        self.assertTrue(response.ok)
        self.assertEqual(response.data, {"wayvnc": "0.7.0"})

    def test_data_optional(self):
        response = Response.from_json({"code": 3})
        self.assertFalse(response.ok)
        self.assertIsNone(response.data)

    def test_invalid_code(self):
        for value in ({}, {"code": "0"}, {"code": True}, [], "x"):
            with self.assertRaises(ProtocolError):
                Response.from_json(value)


if __name__ == "__main__":
    unittest.main()
