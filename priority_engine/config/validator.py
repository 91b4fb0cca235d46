"""
Normalization, cloning and structural comparison of priority configs

normalize() accepts any decoded JSON value and always produces a well-formed
PriorityConfig: missing or malformed fields fall back to the base config,
numbers are clamped to their documented range and rule ids are regenerated
when missing or duplicated.
"""
import hashlib
import json
import logging
import math
import re
import uuid
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from pydantic.alias_generators import to_camel

from ..errors import ValidationError
from .defaults import DEFAULT_PRIORITY_CONFIG
from .schema import (
    ACTION_TYPES,
    TRIAGE_STATES,
    ActionRule,
    AdvancedBoost,
    BoostCriteria,
    CrossLabelRule,
    DependencyPenalties,
    EmailConfig,
    HealthConfig,
    IdleAgeConfig,
    PriorityConfig,
    ScheduleEntry,
    SchedulingConfig,
    TaskConfig,
    TimeConfig,
    TimelineConfig,
)

logger = logging.getLogger(__name__)

IdGenerator = Callable[[str], str]
Bounds = Tuple[Optional[float], Optional[float], bool]

TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')

# (min, max, round) for every numeric field, keyed by attribute name
TIME_RANGES: Dict[str, Bounds] = {
    'upcoming_base_score': (0, 200, True),
    'upcoming_decay_per_day': (0, 50, True),
    'overdue_base_penalty': (0, 200, True),
    'overdue_penalty_per_day': (0, 100, True),
    'overdue_max_penalty': (0, 400, True),
}
IDLE_AGE_RANGES: Dict[str, Bounds] = {
    'short_window_hours': (0, 72, True),
    'short_window_multiplier': (0, None, False),
    'medium_window_start_hours': (0, 72, True),
    'medium_window_end_hours': (1, 168, True),
    'medium_window_base': (0, 200, True),
    'medium_window_multiplier': (0, None, False),
    'long_window_start_hours': (0, 720, True),
    'long_window_base': (0, 400, True),
    'long_window_multiplier': (0, None, False),
    'long_window_max_bonus': (0, 400, True),
}
EMAIL_RANGES: Dict[str, Bounds] = {
    'default_category_weight': (0, 100, True),
    'model_priority_weight': (0, 1, False),
    'unread_bonus': (0, 100, True),
    'snooze_age_reduction': (0, 1, False),
}
TASK_RANGES: Dict[str, Bounds] = {
    'no_due_date_value': (0, 100, True),
    'manual_priority_weight': (0, 1, False),
}
TIMELINE_RANGES: Dict[str, Bounds] = {
    'undated_value': (0, 100, True),
    'manual_priority_weight': (0, 1, False),
}
DEPENDENCY_RANGES: Dict[str, Bounds] = {
    'finish_to_start': (0, 200, True),
    'other': (0, 200, True),
}
HEALTH_RANGES: Dict[str, Bounds] = {
    'base_score': (0, 200, True),
    'min_score': (0, 200, True),
    'max_score': (0, 200, True),
    'open_task_penalty_per_item': (0, 100, True),
    'open_task_penalty_cap': (0, 400, True),
    'conflict_penalty_per_item': (0, 100, True),
    'conflict_penalty_cap': (0, 400, True),
    'linked_email_penalty_per_item': (0, 100, True),
    'linked_email_penalty_cap': (0, 400, True),
}
CATEGORY_WEIGHT_RANGE: Bounds = (0, 100, True)
TRIAGE_ADJUSTMENT_RANGE: Bounds = (-200, 200, True)
STATUS_BOOST_RANGE: Bounds = (-100, 200, True)
CONFLICT_PENALTY_RANGE: Bounds = (0, 200, True)
CROSS_LABEL_WEIGHT_RANGE: Bounds = (-200, 200, True)
BOOST_WEIGHT_RANGE: Bounds = (-100, 200, True)


def uuid_id_generator(prefix: str) -> str:
    """Default id generator: prefixed UUIDv4"""
    return f'{prefix}-{uuid.uuid4()}'


class SequentialIdGenerator:
    """Deterministic id generator producing prefix-1, prefix-2, ..."""

    def __init__(self, start: int = 1):
        self.counter = start - 1

    def __call__(self, prefix: str) -> str:
        self.counter += 1
        return f'{prefix}-{self.counter}'


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def to_number(value: Any) -> Optional[float]:
    """Parse a finite number from a number or numeric string, else None"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def sanitize_number(value: Any, fallback: float, min_value: Optional[float] = None,
                    max_value: Optional[float] = None, round_result: bool = False) -> float:
    parsed = to_number(value)
    result = fallback if parsed is None else parsed
    if min_value is not None:
        result = max(min_value, result)
    if max_value is not None:
        result = min(max_value, result)
    if round_result:
        result = round_half_up(result)
    return result


def clamp_to(bounds: Bounds, value: Any, fallback: float) -> float:
    """Clamp a value to a field's bounds, keeping the fallback for unusable input"""
    min_value, max_value, round_result = bounds
    return sanitize_number(value, fallback, min_value, max_value, round_result)


def sanitize_boolean(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in ('true', '1'):
            return True
        if lower in ('false', '0'):
            return False
    return fallback


def _optional_boolean(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
        return value.strip().lower() == 'true'
    return None


def _string(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


def _optional_string(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    result: List[str] = []
    for item in value:
        if isinstance(item, str) and item.strip() and item.strip() not in result:
            result.append(item.strip())
    return result


def _field(raw: Any, name: str) -> Any:
    """Read a field by its wire (camelCase) name or its attribute name"""
    if not isinstance(raw, dict):
        return None
    alias = to_camel(name)
    if alias in raw:
        return raw[alias]
    return raw.get(name)


def _numbers(raw: Any, base: Any, ranges: Dict[str, Bounds]) -> Dict[str, float]:
    return {name: clamp_to(bounds, _field(raw, name), getattr(base, name)) for name, bounds in ranges.items()}


def _weight_map(raw: Any, base: Dict[str, int], bounds: Bounds,
                allowed: Optional[Tuple[str, ...]] = None) -> Dict[str, int]:
    result = dict(base)
    if not isinstance(raw, dict):
        return result
    for key, value in raw.items():
        if not isinstance(key, str) or not key.strip():
            continue
        if allowed is not None and key not in allowed:
            continue
        result[key] = clamp_to(bounds, value, result.get(key, 0))
    return result


def _resolve_id(raw: Dict[str, Any], prefix: str, seen: Set[str], id_generator: IdGenerator) -> str:
    candidate = _optional_string(raw.get('id'))
    if candidate is None or candidate in seen:
        logger.debug(f"Regenerating {prefix} id (was {candidate!r})")
        candidate = id_generator(prefix)
        while candidate in seen:
            candidate = id_generator(prefix)
    seen.add(candidate)
    return candidate


def _cross_label_rules(raw: Any, base: List[CrossLabelRule]) -> List[CrossLabelRule]:
    if not isinstance(raw, list):
        return [rule.model_copy(deep=True) for rule in base]

    by_prefix: Dict[str, CrossLabelRule] = {}
    for candidate in raw:
        if not isinstance(candidate, dict):
            continue
        prefix = _string(candidate.get('prefix'), '')
        if not prefix:
            continue
        fallback = next((rule for rule in base if rule.prefix == prefix), None)
        by_prefix[prefix] = CrossLabelRule(
            prefix=prefix,
            weight=clamp_to(CROSS_LABEL_WEIGHT_RANGE, candidate.get('weight'), fallback.weight if fallback else 0),
            description=_string(candidate.get('description'), fallback.description if fallback else prefix),
            case_insensitive=sanitize_boolean(
                _field(candidate, 'case_insensitive'),
                fallback.case_insensitive if fallback else True,
            ),
        )
    return list(by_prefix.values())


def _advanced_boosts(raw: Any, base: List[AdvancedBoost], id_generator: IdGenerator) -> List[AdvancedBoost]:
    if not isinstance(raw, list):
        return [boost.model_copy(deep=True) for boost in base]

    seen: Set[str] = set()
    boosts = []
    for candidate in raw:
        if not isinstance(candidate, dict):
            continue
        criteria = candidate.get('criteria')
        if not isinstance(criteria, dict):
            criteria = {}
        min_priority = to_number(_field(criteria, 'min_priority'))
        boosts.append(AdvancedBoost(
            id=_resolve_id(candidate, 'boost', seen, id_generator),
            label=_string(candidate.get('label'), 'Boost'),
            description=_optional_string(candidate.get('description')),
            weight=clamp_to(BOOST_WEIGHT_RANGE, candidate.get('weight'), 0),
            criteria=BoostCriteria(
                senders=_string_list(criteria.get('senders')),
                domains=_string_list(criteria.get('domains')),
                keywords=_string_list(criteria.get('keywords')),
                labels=_string_list(criteria.get('labels')),
                categories=_string_list(criteria.get('categories')),
                has_attachment=_optional_boolean(_field(criteria, 'has_attachment')),
                min_priority=min_priority,
            ),
            explanation=_optional_string(candidate.get('explanation')),
        ))
    return boosts


def _action_rules(raw: Any, base: List[ActionRule], id_generator: IdGenerator) -> List[ActionRule]:
    if not isinstance(raw, list):
        return [rule.model_copy(deep=True) for rule in base]

    seen: Set[str] = set()
    rules = []
    for candidate in raw:
        if not isinstance(candidate, dict):
            continue
        action_type = _field(candidate, 'action_type')
        if action_type is None:
            action_type = 'playbook'
        elif action_type not in ACTION_TYPES:
            action_type = 'custom'
        triage_states = [state for state in _string_list(_field(candidate, 'triage_states'))
                         if state in TRIAGE_STATES]
        payload = candidate.get('payload')
        rules.append(ActionRule(
            id=_resolve_id(candidate, 'action', seen, id_generator),
            label=_string(candidate.get('label'), 'Action'),
            description=_optional_string(candidate.get('description')),
            action_type=action_type,
            categories=_string_list(candidate.get('categories')),
            triage_states=triage_states,
            min_priority=to_number(_field(candidate, 'min_priority')),
            icon=_optional_string(candidate.get('icon')),
            color=_optional_string(candidate.get('color')),
            payload=payload if isinstance(payload, dict) else None,
        ))
    return rules


def _days_of_week(raw: Any) -> List[int]:
    if not isinstance(raw, list):
        return [1]
    days = set()
    for value in raw:
        number = to_number(value)
        if number is not None and float(number).is_integer() and 0 <= number <= 6:
            days.add(int(number))
    return sorted(days)


def _schedule_entries(raw: Any, base: List[ScheduleEntry], id_generator: IdGenerator) -> List[ScheduleEntry]:
    if not isinstance(raw, list):
        return [entry.model_copy(deep=True) for entry in base]

    seen: Set[str] = set()
    entries = []
    for candidate in raw:
        if not isinstance(candidate, dict):
            continue
        start_time = _field(candidate, 'start_time')
        end_time = _field(candidate, 'end_time')
        entries.append(ScheduleEntry(
            id=_resolve_id(candidate, 'schedule', seen, id_generator),
            label=_string(candidate.get('label'), 'Scheduled preset'),
            preset_slug=_string(_field(candidate, 'preset_slug'), ''),
            days_of_week=_days_of_week(_field(candidate, 'days_of_week')),
            start_time=start_time if is_valid_time(start_time) else '08:00',
            end_time=end_time if is_valid_time(end_time) else None,
            auto_apply=sanitize_boolean(_field(candidate, 'auto_apply'), True),
        ))
    return entries


def is_valid_time(value: Any) -> bool:
    """True for 24h HH:MM strings"""
    return isinstance(value, str) and bool(TIME_PATTERN.match(value))


def _email(raw: Any, base: EmailConfig, id_generator: IdGenerator) -> EmailConfig:
    if not isinstance(raw, dict):
        return base.model_copy(deep=True)
    return EmailConfig(
        category_weights=_weight_map(_field(raw, 'category_weights'), base.category_weights, CATEGORY_WEIGHT_RANGE),
        triage_state_adjustments=_weight_map(
            _field(raw, 'triage_state_adjustments'),
            base.triage_state_adjustments,
            TRIAGE_ADJUSTMENT_RANGE,
            allowed=TRIAGE_STATES,
        ),
        cross_label_rules=_cross_label_rules(_field(raw, 'cross_label_rules'), base.cross_label_rules),
        idle_age=IdleAgeConfig(**_numbers(_field(raw, 'idle_age'), base.idle_age, IDLE_AGE_RANGES)),
        advanced_boosts=_advanced_boosts(_field(raw, 'advanced_boosts'), base.advanced_boosts, id_generator),
        action_rules=_action_rules(_field(raw, 'action_rules'), base.action_rules, id_generator),
        **_numbers(raw, base, EMAIL_RANGES),
    )


def _tasks(raw: Any, base: TaskConfig) -> TaskConfig:
    if not isinstance(raw, dict):
        return base.model_copy(deep=True)
    return TaskConfig(
        status_boosts=_weight_map(_field(raw, 'status_boosts'), base.status_boosts, STATUS_BOOST_RANGE),
        **_numbers(raw, base, TASK_RANGES),
    )


def _timeline(raw: Any, base: TimelineConfig) -> TimelineConfig:
    if not isinstance(raw, dict):
        return base.model_copy(deep=True)
    return TimelineConfig(
        conflict_penalties=_weight_map(
            _field(raw, 'conflict_penalties'), base.conflict_penalties, CONFLICT_PENALTY_RANGE),
        dependency_penalties=DependencyPenalties(
            **_numbers(_field(raw, 'dependency_penalties'), base.dependency_penalties, DEPENDENCY_RANGES)),
        **_numbers(raw, base, TIMELINE_RANGES),
    )


def _scheduling(raw: Any, base: SchedulingConfig, id_generator: IdGenerator) -> SchedulingConfig:
    if not isinstance(raw, dict):
        return base.model_copy(deep=True)
    return SchedulingConfig(
        timezone=_string(raw.get('timezone'), base.timezone),
        entries=_schedule_entries(raw.get('entries'), base.entries, id_generator),
    )


def normalize(raw: Any, base: Optional[PriorityConfig] = None,
              id_generator: Optional[IdGenerator] = None) -> PriorityConfig:
    """Normalize arbitrary decoded JSON into a PriorityConfig

    Raises ValidationError only when the root is neither an object nor None.
    """
    base = clone(base if base is not None else DEFAULT_PRIORITY_CONFIG)
    id_generator = id_generator or uuid_id_generator
    if raw is None:
        return base
    if isinstance(raw, PriorityConfig):
        raw = raw.to_json_dict()
    if not isinstance(raw, dict):
        logger.warning(f"Rejecting priority config with root of type {type(raw).__name__}")
        raise ValidationError()

    return PriorityConfig(
        time=TimeConfig(**_numbers(raw.get('time'), base.time, TIME_RANGES)),
        email=_email(raw.get('email'), base.email, id_generator),
        tasks=_tasks(raw.get('tasks'), base.tasks),
        timeline=_timeline(raw.get('timeline'), base.timeline),
        health=HealthConfig(**_numbers(raw.get('health'), base.health, HEALTH_RANGES)),
        scheduling=_scheduling(raw.get('scheduling'), base.scheduling, id_generator),
    )


def clone(config: PriorityConfig) -> PriorityConfig:
    """Deep copy with no references shared with the source"""
    return config.model_copy(deep=True)


def is_equal(a: PriorityConfig, b: PriorityConfig) -> bool:
    """Structural equality: mappings ignore key order, lists compare in order"""
    return a.model_dump() == b.model_dump()


def config_fingerprint(config: PriorityConfig) -> str:
    """Stable hash of the canonical JSON form, usable as a cache version"""
    canonical = json.dumps(config.to_json_dict(), sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(canonical.encode('utf-8')).hexdigest()
