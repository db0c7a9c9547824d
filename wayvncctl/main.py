#!/usr/bin/env python3
"""
Main entry point for the wayvncctl command.

This delegates to the UI layer in wayvncctl.ui.cli to keep the
console script mapping stable.
"""

from wayvncctl.ui.cli import run as wayvncctl


if __name__ == "__main__":
    wayvncctl()
