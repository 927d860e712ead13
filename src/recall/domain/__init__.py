# Domain Package
from .errors import CardNotFoundError, RecallError, StoreError
from .models import Card, CardCluster, ReviewMode, SaveResult
from .ports import CardStore, Clock

__all__ = [
    "Card",
    "CardCluster",
    "ReviewMode",
    "SaveResult",
    "CardStore",
    "Clock",
    "RecallError",
    "CardNotFoundError",
    "StoreError",
]
