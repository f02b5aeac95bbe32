"""readledger - event-sourced reading tracker with monthly genre analytics."""

__version__ = "0.1.0"
