"""Visibility policy for resolving short links."""

from .database.models import AssetRecord
from .identity import Requester, Role


def permits(record: AssetRecord, requester) -> bool:
    """Decide whether ``requester`` may see ``record``.

    Allowed when the asset is public, the requester owns it, or the
    requester is an administrator. Anything that is not a well-formed
    Requester is treated as anonymous. Never raises.
    """
    if getattr(record, "is_public", False) is True:
        return True
    if not isinstance(requester, Requester) or requester.is_anonymous:
        return False
    if requester.role == Role.ADMIN:
        return True
    return requester.user_id == getattr(record, "owner_id", None)


def can_modify(record: AssetRecord, requester) -> bool:
    """Owner or administrator."""
    if not isinstance(requester, Requester) or requester.is_anonymous:
        return False
    return requester.is_admin or requester.user_id == record.owner_id
