from __future__ import annotations

from enum import Enum
from typing import Union

# Values accepted as cache parameters. Anything else cannot be keyed deterministically.
JSONValue = Union[str, int, float, bool, None, list["JSONValue"], dict[str, "JSONValue"]]


class CacheNamespace(str, Enum):
    """Data domains with their own slice of the cache.

    Using (str, Enum) for Python 3.10 compatibility (StrEnum requires 3.11+).
    """

    PERFORMANCE_RECORDS = "performance_records"
    STUDENT_SUMMARY = "performance_student_summary"
    CLASS_ACTIVITY = "performance_class_activity"
    REALTIME = "performance_realtime"
    STUDENTS = "system:students"
    USERS = "system:users"
    ANALYTICS = "analytics"


PERFORMANCE_PREFIX = "performance_"


class EntityType(str, Enum):
    """Entity kinds accepted by the real-time analytics endpoint."""

    STUDENT = "student"
    CLASS = "class"
    SUBJECT = "subject"
