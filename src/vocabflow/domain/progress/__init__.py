# Domain Progress Package
from .models import DailyActivity, LedgerState, Settings, TodayProgress, VideoProgress
from .ports import ProgressStorage

__all__ = [
    "VideoProgress",
    "DailyActivity",
    "Settings",
    "LedgerState",
    "TodayProgress",
    "ProgressStorage",
]
