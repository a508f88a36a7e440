"""PayBack Transfer - export, import and identity reconciliation for PayBack data."""

from .cli import app
from .config import TransferConfig

__version__ = "0.1.0"
__all__ = ["app", "TransferConfig"]
