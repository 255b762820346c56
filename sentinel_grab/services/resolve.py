"""Bbox and date-range resolution for download jobs.

Both resolvers are pure: the same job input always yields the same result.
They raise ConfigurationError when no input path produces a usable value.
"""

import calendar
import re
from datetime import date, datetime
from typing import Optional, Union

from sentinel_grab.config import ConfigurationError
from sentinel_grab.jobs.models import Bbox, DateRange, Job

_BBOX_SEPARATORS = re.compile(r"[,\s]+")
_MONTH_KEY = re.compile(r"\d{4}-\d{2}")
_DAY_KEY = re.compile(r"\d{4}-\d{2}-\d{2}")


def resolve_bbox(job: Job) -> Bbox:
    """Resolve the job's bounding box.

    Explicit numeric fields win when all four are set; otherwise the bbox
    string is parsed as four comma- or space-separated numbers
    (minLon, minLat, maxLon, maxLat).

    Raises:
        ConfigurationError: If neither source yields four numbers
    """
    explicit = (job.bbox_min_lon, job.bbox_min_lat, job.bbox_max_lon, job.bbox_max_lat)
    if all(v is not None for v in explicit):
        return Bbox(*(float(v) for v in explicit))

    if job.bbox and job.bbox.strip():
        parts = [p for p in _BBOX_SEPARATORS.split(job.bbox.strip()) if p]
        if len(parts) == 4:
            try:
                return Bbox(*(float(p) for p in parts))
            except ValueError:
                pass

    raise ConfigurationError(
        f"Job {job.job_id} has no usable bbox (fields or bbox string '{job.bbox}')"
    )


def _as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _parse_date_key(key: str) -> Optional[DateRange]:
    """Try year-month, day and compact-day formats in that order.

    Fields must be zero-padded; "2025-5" is rejected.
    """
    if _MONTH_KEY.fullmatch(key):
        try:
            month_start = datetime.strptime(key, "%Y-%m").date()
        except ValueError:
            return None
        last_day = calendar.monthrange(month_start.year, month_start.month)[1]
        return DateRange(month_start, month_start.replace(day=last_day), key)

    if _DAY_KEY.fullmatch(key):
        try:
            day = datetime.strptime(key, "%Y-%m-%d").date()
        except ValueError:
            return None
        return DateRange(day, day, key)

    if len(key) == 8 and key.isdigit():
        try:
            day = datetime.strptime(key, "%Y%m%d").date()
        except ValueError:
            return None
        return DateRange(day, day, day.isoformat())

    return None


def resolve_date_range(job: Job) -> DateRange:
    """Resolve the job's closed date interval and its date key.

    An explicit (date_from, date_to) pair wins, keyed by the job's date key or
    else date_from as YYYY-MM-DD. Otherwise the date key is parsed as
    YYYY-MM (whole month), YYYY-MM-DD or YYYYMMDD (normalized to YYYY-MM-DD).

    Raises:
        ConfigurationError: If no date source can be resolved
    """
    if job.date_from is not None and job.date_to is not None:
        date_from = _as_date(job.date_from)
        date_to = _as_date(job.date_to)
        key = job.date_key.strip() if job.date_key and job.date_key.strip() else None
        return DateRange(date_from, date_to, key or date_from.isoformat())

    if job.date_key and job.date_key.strip():
        resolved = _parse_date_key(job.date_key.strip())
        if resolved is not None:
            return resolved

    raise ConfigurationError(
        f"Job {job.job_id} has no usable date range (date key '{job.date_key}')"
    )
