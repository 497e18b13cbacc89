"""
Analytics package exports.
"""

from vocab_srs.analytics.service import (
    build_study_summary,
    load_study_summary,
    load_user_statistics,
    make_statistics_hook,
    record_review_statistics,
)
from vocab_srs.analytics.statistics import UserStatistics, count_mastered, update_user_statistics
from vocab_srs.analytics.types import StudySummary

__all__ = [
    "build_study_summary",
    "load_study_summary",
    "load_user_statistics",
    "make_statistics_hook",
    "record_review_statistics",
    "UserStatistics",
    "count_mastered",
    "update_user_statistics",
    "StudySummary",
]
