# Domain Review Package
from .models import ReviewCard, ReviewSchedule

__all__ = ["ReviewCard", "ReviewSchedule"]
