"""Stateless helpers for browsing an owner's uploads."""

import math
import re
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from .database.models import AssetRecord
from .errors import ValidationError


MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def month_bounds(month: str) -> Tuple[datetime, datetime]:
    """Turn ``YYYY-MM`` into a [start, end) UTC range."""
    match = MONTH_RE.match(month or "")
    if not match:
        raise ValidationError("Month must look like YYYY-MM")

    year, mon = int(match.group(1)), int(match.group(2))
    # The exclusive end bound must still be a valid datetime
    if not 1 <= mon <= 12 or not 1970 <= year < 9999:
        raise ValidationError(f"Invalid month: {month}")

    start = datetime(year, mon, 1, tzinfo=timezone.utc)
    if mon == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, mon + 1, 1, tzinfo=timezone.utc)
    return start, end


def current_month(now: Optional[datetime] = None) -> str:
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return f"{now.year:04d}-{now.month:02d}"


def search_records(records: Iterable[AssetRecord], term: Optional[str]) -> List[AssetRecord]:
    """Case-insensitive substring match on the original name."""
    records = list(records)
    needle = (term or "").strip().lower()
    if not needle:
        return records
    return [r for r in records if needle in (r.original_name or "").lower()]


def group_by_month(records: Iterable[AssetRecord]) -> Dict[str, List[AssetRecord]]:
    """Group records under ``YYYY-MM`` keys, newest month and record first."""
    groups: Dict[str, List[AssetRecord]] = {}
    for record in sorted(records, key=lambda r: r.created_at, reverse=True):
        groups.setdefault(current_month(record.created_at), []).append(record)
    return groups


def format_file_size(num_bytes: int) -> str:
    if num_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = min(int(math.floor(math.log(num_bytes, 1024))), len(units) - 1)
    value = round(num_bytes / (1024 ** i), 2)
    return f"{value:g} {units[i]}"
