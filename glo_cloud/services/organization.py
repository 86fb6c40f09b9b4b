# glo_cloud/services/organization.py
"""Employee/week layout of uploaded files.

Every upload lands in ``uploads/emp_{employee}_{user8}/week-{N}/`` where
``employee`` is the owner's employee id (or user id when unset), ``user8`` is
the first eight characters of the user id and ``N`` is the week of the year.
"""
import math
import random
import re
import string
import time
from datetime import date, datetime
from typing import Optional, Union

from fastapi import HTTPException

from ..config import settings
from ..models.database import utcnow

_RAND_ALPHABET = string.ascii_lowercase + string.digits
MAX_BASE_NAME = 50
EMPLOYEE_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def week_number(value: Union[date, datetime]) -> int:
    """Week of the year, 1-based; Jan 1 is always week 1.

    Weeks are counted from the start of the year, shifted by the weekday of
    Jan 1 with Sunday as day 0.
    """
    day = value.date() if isinstance(value, datetime) else value
    start_of_year = date(day.year, 1, 1)
    days = (day - start_of_year).days
    first_weekday = (start_of_year.weekday() + 1) % 7  # Sunday == 0
    return math.ceil((days + first_weekday + 1) / 7)


def current_week_number() -> int:
    """Week of today in UTC, matching the stored created_at timestamps"""
    return week_number(utcnow())


def employee_identifier(user) -> str:
    """Employee id when set, else the user id"""
    return user.employee_id or str(user.id)


def is_valid_employee_id(value: str) -> bool:
    """Employee ids become a path segment: letters, digits, dash and underscore only"""
    return bool(EMPLOYEE_ID_PATTERN.fullmatch(value or ""))


def employee_upload_path(employee_id: str, user_id: str, week: Optional[int] = None) -> str:
    """Relative directory for an employee's uploads in a given week"""
    if not is_valid_employee_id(employee_id):
        raise HTTPException(status_code=400, detail="Invalid employee ID")
    week = week or current_week_number()
    user_hash = str(user_id)[:8]
    return f"{settings.UPLOAD_DIR}/emp_{employee_id}_{user_hash}/week-{week}"


def split_extension(filename: str):
    """Split on the last dot; names without one (or dotfiles) have no extension"""
    base, dot, ext = filename.rpartition(".")
    if not dot or not base:
        return filename, ""
    return base, ext


def unique_filename(original_name: str) -> str:
    """Collision-resistant stored name: ``{base}_{epoch_ms}_{rand6}.{ext}``"""
    base, ext = split_extension(original_name)
    base = base[:MAX_BASE_NAME]
    timestamp = int(time.time() * 1000)
    random_id = "".join(random.choices(_RAND_ALPHABET, k=6))
    name = f"{base}_{timestamp}_{random_id}"
    return f"{name}.{ext}" if ext else name
