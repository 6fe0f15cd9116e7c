"""
Store availability sniper.

This package polls a retail store locator for the in-store availability of a
single product, checks the operator's watched stores, notifies a Discord
webhook when one of them has it, and helps find store IDs by city name.
See README.md for details.
"""

__all__ = [
    "config",
    "state",
    "directory",
    "resolver",
    "checker",
    "notifier",
    "scheduler",
    "main",
    "cli",
    "utils",
]
