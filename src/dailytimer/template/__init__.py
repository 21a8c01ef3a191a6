"""
Templates
"""

from dailytimer.template.daily_service import DAILY_SERVICE
from dailytimer.template.daily_timer import DAILY_TIMER


__all__ = [
    "DAILY_SERVICE",
    "DAILY_TIMER",
]
