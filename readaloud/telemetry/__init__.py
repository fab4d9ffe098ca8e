"""Telemetry and observability.

This package meters remote synthesis costs and emits runtime event logs.
"""

from .logger import RunLogger
from .usage_meter import UsageMeter

__all__ = ["RunLogger", "UsageMeter"]
