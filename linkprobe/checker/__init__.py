"""Checker package: validate targets against the network or filesystem."""

from linkprobe.checker.core import Checker
from linkprobe.checker.retry import BackoffPolicy, CheckState, RetryMachine

__all__ = ["Checker", "BackoffPolicy", "CheckState", "RetryMachine"]
