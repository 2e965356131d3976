"""Boundary errors and status mapping."""
from .api_errors import BoundaryErrorCodes

__all__ = [
    'BoundaryErrorCodes',
]
