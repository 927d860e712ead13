# Card Store Adapters
from .local import LocalCardStore
from .rest import RestCardStore

__all__ = ["LocalCardStore", "RestCardStore"]
