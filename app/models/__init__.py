# app/models/__init__.py

from .payment import Payment
from .magazine import Magazine

__all__ = [
    "Payment",
    "Magazine",
]
