"""
Pydantic parameter structs for the card and quiz schedulers.

Schedulers are built from an explicit parameter value instead of module
globals, so a per-user tuning can be passed in without touching shared state.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from vocab_srs.fsrs.constants import (
    CARD_MAXIMUM_INTERVAL,
    CARD_MINIMUM_INTERVAL,
    CARD_REQUEST_RETENTION,
    DEFAULT_WEIGHTS,
    QUIZ_DEFAULT_RESPONSE_TIME_MS,
    QUIZ_DIFFICULTY_DECREMENT,
    QUIZ_DIFFICULTY_INCREMENT,
    QUIZ_EASY_SPEED_RATIO,
    QUIZ_HARD_SPEED_RATIO,
    QUIZ_INITIAL_DIFFICULTY,
    QUIZ_INITIAL_STABILITY,
    QUIZ_JITTER,
    QUIZ_MAXIMUM_INTERVAL,
    QUIZ_MINIMUM_INTERVAL,
    QUIZ_MULTIPLIERS,
    QUIZ_REQUEST_RETENTION,
    QUIZ_STABILITY_DECAY,
    QuizResponse,
    WEIGHT_COUNT,
)


class CardParameters(BaseModel):
    """Coefficients for the long-horizon card scheduler."""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    request_retention: float = Field(CARD_REQUEST_RETENTION, gt=0.0, lt=1.0)
    minimum_interval: float = Field(CARD_MINIMUM_INTERVAL, ge=1.0)
    maximum_interval: float = Field(CARD_MAXIMUM_INTERVAL, gt=0.0)
    w: tuple[float, ...] = Field(default=DEFAULT_WEIGHTS)

    @field_validator("w")
    @classmethod
    def _check_weight_count(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if len(value) != WEIGHT_COUNT:
            raise ValueError(f"expected {WEIGHT_COUNT} weights, got {len(value)}")
        bad = [i for i, weight in enumerate(value) if not math.isfinite(weight)]
        if bad:
            raise ValueError(f"weights must be finite, got non-finite values at {bad}")
        return value

    @model_validator(mode="after")
    def _check_bounds(self) -> "CardParameters":
        if self.minimum_interval > self.maximum_interval:
            raise ValueError("minimum_interval must not exceed maximum_interval")
        return self


class QuizParameters(BaseModel):
    """Coefficients for the short-horizon quiz scheduler."""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    request_retention: float = Field(QUIZ_REQUEST_RETENTION, gt=0.0, lt=1.0)
    minimum_interval: float = Field(QUIZ_MINIMUM_INTERVAL, gt=0.0)
    maximum_interval: float = Field(QUIZ_MAXIMUM_INTERVAL, gt=0.0)

    easy_multiplier: float = Field(QUIZ_MULTIPLIERS[QuizResponse.EASY], gt=0.0)
    good_multiplier: float = Field(QUIZ_MULTIPLIERS[QuizResponse.GOOD], gt=0.0)
    hard_multiplier: float = Field(QUIZ_MULTIPLIERS[QuizResponse.HARD], gt=0.0)
    again_multiplier: float = Field(QUIZ_MULTIPLIERS[QuizResponse.AGAIN], gt=0.0)

    stability_decay: float = Field(QUIZ_STABILITY_DECAY, gt=0.0, le=1.0)
    difficulty_increment: float = Field(QUIZ_DIFFICULTY_INCREMENT, ge=0.0)
    difficulty_decrement: float = Field(QUIZ_DIFFICULTY_DECREMENT, ge=0.0)

    initial_stability: float = Field(QUIZ_INITIAL_STABILITY, gt=0.0)
    initial_difficulty: float = Field(QUIZ_INITIAL_DIFFICULTY, ge=1.0, le=10.0)
    default_response_time_ms: float = Field(QUIZ_DEFAULT_RESPONSE_TIME_MS, gt=0.0)

    easy_speed_ratio: float = Field(QUIZ_EASY_SPEED_RATIO, gt=0.0)
    hard_speed_ratio: float = Field(QUIZ_HARD_SPEED_RATIO, gt=0.0)
    jitter: float = Field(QUIZ_JITTER, ge=0.0, lt=1.0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "QuizParameters":
        if self.minimum_interval > self.maximum_interval:
            raise ValueError("minimum_interval must not exceed maximum_interval")
        if self.easy_speed_ratio > self.hard_speed_ratio:
            raise ValueError("easy_speed_ratio must not exceed hard_speed_ratio")
        return self

    def multiplier_for(self, quality: QuizResponse) -> float:
        """Stability multiplier for a response quality."""
        return {
            QuizResponse.EASY: self.easy_multiplier,
            QuizResponse.GOOD: self.good_multiplier,
            QuizResponse.HARD: self.hard_multiplier,
            QuizResponse.AGAIN: self.again_multiplier,
        }[quality]
