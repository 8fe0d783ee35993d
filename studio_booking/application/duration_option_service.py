"""Durations a booking may have.

While no option is configured at all, any positive duration is bookable.
Once options exist, at least one of them stays active.
"""
from __future__ import annotations

from typing import List, Optional

from studio_booking.app.config import AppConfig
from studio_booking.app.logging import get_logger
from studio_booking.domain.duration import MAX_DURATION_MINUTES, MAX_LABEL_LENGTH, DurationOption
from studio_booking.domain.errors import (
    DurationNotAllowed,
    EntityNotFound,
    InvalidDuration,
    LastActiveDurationOption,
    ValidationError,
)
from studio_booking.infrastructure.repository import StudioRepository

logger = get_logger(__name__)


class DurationOptionService:
    def __init__(self, config: AppConfig, repository: StudioRepository):
        self.config = config
        self.repository = repository

    def list_options(self, include_inactive: bool = False) -> List[DurationOption]:
        return [o for o in self.repository.list_duration_options() if include_inactive or o.active]

    def get_option(self, option_id: str) -> DurationOption:
        option = self.repository.get_duration_option(option_id)
        if not option:
            raise EntityNotFound("Duration option", option_id)
        return option

    def create_option(
        self,
        label: str,
        minutes: int = 0,
        is_variable: bool = False,
        min_minutes: Optional[int] = None,
        max_minutes: Optional[int] = None,
        step_minutes: Optional[int] = None,
        sort_order: Optional[int] = None,
    ) -> DurationOption:
        label = self._validate_label(label)
        self._validate_range(minutes, is_variable, min_minutes, max_minutes, step_minutes)
        if sort_order is None:
            sort_order = max((o.sort_order for o in self.repository.list_duration_options()), default=0) + 1

        shape = self._shape(minutes, is_variable, min_minutes, max_minutes, step_minutes)
        option = DurationOption(label=label, sort_order=sort_order, **shape)
        self.repository.save_duration_option(option)
        logger.info("Duration option %s (%s) created", option.option_id, option.describe())
        return option

    def update_option(
        self,
        option_id: str,
        label: str,
        minutes: int,
        is_variable: bool,
        min_minutes: Optional[int],
        max_minutes: Optional[int],
        step_minutes: Optional[int],
        sort_order: int,
        active: bool,
    ) -> DurationOption:
        option = self.get_option(option_id)
        label = self._validate_label(label)
        self._validate_range(minutes, is_variable, min_minutes, max_minutes, step_minutes)
        if option.active and not active and self._active_count() <= 1:
            raise LastActiveDurationOption(option_id)

        option.label = label
        option.sort_order = sort_order
        option.active = active
        shape = self._shape(minutes, is_variable, min_minutes, max_minutes, step_minutes)
        for name, value in shape.items():
            setattr(option, name, value)
        self.repository.save_duration_option(option)
        return option

    def delete_option(self, option_id: str) -> None:
        option = self.get_option(option_id)
        if option.active and self._active_count() <= 1:
            raise LastActiveDurationOption(option_id)
        self.repository.delete_duration_option(option_id)
        logger.info("Duration option %s deleted", option_id)

    def validate_duration(self, duration_minutes: int) -> None:
        """Raise unless ``duration_minutes`` is positive and matches an active option."""
        if duration_minutes <= 0:
            raise InvalidDuration(duration_minutes)
        active = self.list_options()
        if not active:
            return
        if not any(option.allows(duration_minutes) for option in active):
            raise DurationNotAllowed(duration_minutes, [option.describe() for option in active])

    def _active_count(self) -> int:
        return len(self.list_options())

    @staticmethod
    def _validate_label(label: str) -> str:
        label = (label or "").strip()
        if not label:
            raise ValidationError("Label must not be empty")
        if len(label) > MAX_LABEL_LENGTH:
            raise ValidationError(f"Label must be at most {MAX_LABEL_LENGTH} characters")
        return label

    @staticmethod
    def _validate_range(
        minutes: int,
        is_variable: bool,
        min_minutes: Optional[int],
        max_minutes: Optional[int],
        step_minutes: Optional[int],
    ) -> None:
        if not is_variable:
            if minutes <= 0:
                raise ValidationError("Minutes must be positive")
            if minutes > MAX_DURATION_MINUTES:
                raise ValidationError(f"Minutes must be at most {MAX_DURATION_MINUTES}")
            return
        if min_minutes is None or max_minutes is None or step_minutes is None:
            raise ValidationError("Variable durations need min, max and step minutes")
        if min_minutes <= 0:
            raise ValidationError("Min minutes must be positive")
        if max_minutes <= min_minutes:
            raise ValidationError("Max minutes must be greater than min minutes")
        if step_minutes <= 0:
            raise ValidationError("Step minutes must be positive")
        if max_minutes > MAX_DURATION_MINUTES:
            raise ValidationError(f"Max minutes must be at most {MAX_DURATION_MINUTES}")

    @staticmethod
    def _shape(minutes, is_variable, min_minutes, max_minutes, step_minutes) -> dict:
        if is_variable:
            return {
                "minutes": 0,
                "is_variable": True,
                "min_minutes": min_minutes,
                "max_minutes": max_minutes,
                "step_minutes": step_minutes,
            }
        return {
            "minutes": minutes,
            "is_variable": False,
            "min_minutes": None,
            "max_minutes": None,
            "step_minutes": None,
        }
