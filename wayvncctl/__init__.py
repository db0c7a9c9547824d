"""wayvncctl - control client for the wayvnc control socket."""

__version__ = "0.1.0"
