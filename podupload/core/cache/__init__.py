"""Process-wide upload state."""
from .upload_cache import UploadCache

__all__ = ['UploadCache']
