"""
Category weights and time-based score adjustments
"""
from datetime import datetime
from typing import Dict, Optional

from ..config.schema import EmailConfig, IdleAgeConfig, TimeConfig
from ..config.validator import round_half_up

HOUR_SECONDS = 60 * 60
DAY_SECONDS = 24 * HOUR_SECONDS


class CategoryWeightTable:
    """Category label -> weight lookup with a default fallback"""

    def __init__(self, weights: Dict[str, int], default_weight: int):
        self.weights = weights
        self.default_weight = default_weight

    @classmethod
    def from_config(cls, config: EmailConfig) -> 'CategoryWeightTable':
        return cls(config.category_weights, config.default_category_weight)

    def weight_for(self, category: Optional[str]) -> int:
        if category is None:
            return self.default_weight
        return self.weights.get(category, self.default_weight)


def model_priority_value(model_score: float, weight: float) -> int:
    """Blend an AI-estimated priority (0-100) into the score"""
    clamped = min(100, max(0, model_score))
    return round_half_up(clamped * weight)


def format_hours(diff_hours: float) -> str:
    absolute = abs(diff_hours)
    if absolute < 1:
        return '<1h'
    if absolute < 24:
        return f'{round_half_up(absolute)}h'
    return f'{round_half_up(absolute / 24)}d'


def format_days(diff_days: float) -> str:
    absolute = abs(diff_days)
    if absolute < 1:
        return '<1d'
    return f'{round_half_up(absolute)}d'


class TimeDecayModel:
    """Turns entity age or lateness into score deltas

    Emails earn an idle-age bonus that grows through short, medium and long
    windows. Dated timeline items and tasks earn an upcoming score that decays
    per day until the date, and a capped penalty once they are overdue.
    """

    def __init__(self, time_config: TimeConfig, idle_config: IdleAgeConfig):
        self.time_config = time_config
        self.idle_config = idle_config

    def idle_value(self, age_hours: float) -> int:
        idle = self.idle_config
        if age_hours < idle.short_window_hours:
            return round_half_up(age_hours * idle.short_window_multiplier)
        if age_hours < idle.medium_window_end_hours:
            hours_into_medium = max(0, age_hours - idle.medium_window_start_hours)
            return round_half_up(idle.medium_window_base + hours_into_medium * idle.medium_window_multiplier)
        hours_beyond_long_start = max(0, age_hours - idle.long_window_start_hours)
        incremental = min(idle.long_window_max_bonus, hours_beyond_long_start * idle.long_window_multiplier)
        return round_half_up(idle.long_window_base + incremental)

    def idle_component(self, received_at: Optional[datetime], now: datetime):
        """(label, value) for an email's idle age, or None"""
        if received_at is None:
            return None
        diff_seconds = (now - received_at).total_seconds()
        if diff_seconds < 0:
            return None
        age_hours = diff_seconds / HOUR_SECONDS
        value = self.idle_value(age_hours)
        if value == 0:
            return None
        return f'Idle {format_hours(age_hours)}', value

    def date_value(self, target: datetime, now: datetime) -> int:
        """Signed score for a date: decaying bonus ahead of it, capped penalty after"""
        diff_days = (target - now).total_seconds() / DAY_SECONDS
        config = self.time_config
        if diff_days >= 0:
            return max(0, config.upcoming_base_score - round_half_up(diff_days * config.upcoming_decay_per_day))
        overdue_days = abs(diff_days)
        penalty = min(
            config.overdue_max_penalty,
            config.overdue_base_penalty + round_half_up(overdue_days * config.overdue_penalty_per_day),
        )
        return -penalty

    def date_component(self, target: datetime, now: datetime, label_prefix: str):
        """(label, value) for a dated entity, or None when the value is zero"""
        value = self.date_value(target, now)
        if value == 0:
            return None
        diff_days = (target - now).total_seconds() / DAY_SECONDS
        if diff_days >= 0:
            return f'{label_prefix} in {format_days(diff_days)}', value
        return f'{label_prefix} overdue by {format_days(diff_days)}', value
