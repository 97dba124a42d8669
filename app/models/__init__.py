# Database models
from app.models.call import Call

__all__ = [
    "Call",
]
