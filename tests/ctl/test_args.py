"""
Tests for ctl/args.py - shaping command-line arguments into requests.
"""

import unittest

from wayvncctl.ctl.args import ArgumentError, request_from_args


class TestRequestFromArgs(unittest.TestCase):

    def test_no_params(self):
        request = request_from_args("version")
        self.assertEqual(request.method, "version")
        self.assertEqual(request.params, {})

    def test_equals_and_separate_values(self):
        request = request_from_args("output-set", ["--output-name=DP-1", "--mode", "1920x1080"])
        self.assertEqual(request.params, {"output-name": "DP-1", "mode": "1920x1080"})

    def test_value_may_contain_equals(self):
        request = request_from_args("x", ["--expr=a=b"])
        self.assertEqual(request.params, {"expr": "a=b"})

    def test_help_rewrites_request(self):
        for flag in ("--help", "-h"):
            request = request_from_args("output-set", ["--output-name=DP-1", flag])
            self.assertEqual(request.method, "help")
            self.assertEqual(request.params, {"command": "output-set"})

    def test_missing_value(self):
        with self.assertRaises(ArgumentError):
            request_from_args("output-set", ["--output-name"])


if __name__ == "__main__":
    unittest.main()
