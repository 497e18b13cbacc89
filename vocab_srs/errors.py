"""
Error taxonomy for the scheduling engine.
"""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for all errors raised by the scheduling engine."""


class InvalidArgument(SchedulingError, ValueError):
    """Caller contract violation: bad rating, malformed item state."""


class PreconditionFailed(SchedulingError):
    """
    The stored item state no longer matches the snapshot the caller reviewed.

    Raised on optimistic-concurrency conflicts; callers should re-fetch the
    item and retry the review from the fresh state.
    """


class ComputationDegenerate(SchedulingError, ArithmeticError):
    """A scheduling computation produced NaN or infinity."""
