"""Object storage backends."""

from .base import StorageBackend, make_storage_key, is_valid_storage_key, key_in_scope
from .local import LocalStorage
from .supabase import SupabaseStorage

__all__ = [
    "StorageBackend",
    "LocalStorage",
    "SupabaseStorage",
    "make_storage_key",
    "is_valid_storage_key",
    "key_in_scope",
]
