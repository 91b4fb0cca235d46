"""
Config editing: clone-then-patch updaters and the editor session state

Every updater returns a new PriorityConfig and leaves its input untouched.
Numeric input that is not a finite number is ignored and the prior value is
kept.
"""
import json
import logging
from datetime import date
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from ..errors import SaveInProgressError, ValidationError
from .defaults import DEFAULT_PRIORITY_CONFIG
from .presets import PresetManager
from .schema import ActionRule, AdvancedBoost, BoostCriteria, CrossLabelRule, PriorityConfig, ScheduleEntry
from .validator import (
    CATEGORY_WEIGHT_RANGE,
    CONFLICT_PENALTY_RANGE,
    DEPENDENCY_RANGES,
    EMAIL_RANGES,
    HEALTH_RANGES,
    IDLE_AGE_RANGES,
    STATUS_BOOST_RANGE,
    TASK_RANGES,
    TIME_RANGES,
    TIMELINE_RANGES,
    TRIAGE_ADJUSTMENT_RANGE,
    IdGenerator,
    clamp_to,
    clone,
    is_equal,
    normalize,
    to_number,
    uuid_id_generator,
)

logger = logging.getLogger(__name__)

IMPORT_ERROR_MESSAGE = 'Failed to import configuration. Please provide a valid export.'

SECTION_RANGES = {
    'time': TIME_RANGES,
    'email': EMAIL_RANGES,
    'tasks': TASK_RANGES,
    'timeline': TIMELINE_RANGES,
    'health': HEALTH_RANGES,
}


def _commit(previous: PriorityConfig, patched: PriorityConfig) -> PriorityConfig:
    """Re-validate a patched copy, falling back to the previous values"""
    return normalize(patched.to_json_dict(), base=previous)


def set_value(config: PriorityConfig, section: str, field: str, value: Any) -> PriorityConfig:
    """Set a numeric field of a top-level section, clamped to its range"""
    bounds = SECTION_RANGES[section][field]
    if to_number(value) is None:
        return clone(config)
    next_config = clone(config)
    target = getattr(next_config, section)
    setattr(target, field, clamp_to(bounds, value, getattr(target, field)))
    return next_config


def set_time_value(config: PriorityConfig, field: str, value: Any) -> PriorityConfig:
    return set_value(config, 'time', field, value)


def set_email_value(config: PriorityConfig, field: str, value: Any) -> PriorityConfig:
    return set_value(config, 'email', field, value)


def set_task_value(config: PriorityConfig, field: str, value: Any) -> PriorityConfig:
    return set_value(config, 'tasks', field, value)


def set_timeline_value(config: PriorityConfig, field: str, value: Any) -> PriorityConfig:
    return set_value(config, 'timeline', field, value)


def set_health_value(config: PriorityConfig, field: str, value: Any) -> PriorityConfig:
    return set_value(config, 'health', field, value)


def set_idle_age_value(config: PriorityConfig, field: str, value: Any) -> PriorityConfig:
    bounds = IDLE_AGE_RANGES[field]
    next_config = clone(config)
    idle_age = next_config.email.idle_age
    setattr(idle_age, field, clamp_to(bounds, value, getattr(idle_age, field)))
    return next_config


def set_dependency_penalty(config: PriorityConfig, field: str, value: Any) -> PriorityConfig:
    bounds = DEPENDENCY_RANGES[field]
    next_config = clone(config)
    penalties = next_config.timeline.dependency_penalties
    setattr(penalties, field, clamp_to(bounds, value, getattr(penalties, field)))
    return next_config


def _set_mapping_value(config: PriorityConfig, getter: Callable[[PriorityConfig], Dict[str, int]],
                       key: str, value: Any, bounds, fallback: int) -> PriorityConfig:
    next_config = clone(config)
    mapping = getter(next_config)
    if to_number(value) is None:
        return next_config
    mapping[key] = clamp_to(bounds, value, mapping.get(key, fallback))
    return next_config


def set_category_weight(config: PriorityConfig, category: str, value: Any) -> PriorityConfig:
    return _set_mapping_value(config, lambda c: c.email.category_weights, category, value,
                              CATEGORY_WEIGHT_RANGE, config.email.default_category_weight)


def set_triage_adjustment(config: PriorityConfig, state: str, value: Any) -> PriorityConfig:
    return _set_mapping_value(config, lambda c: c.email.triage_state_adjustments, state, value,
                              TRIAGE_ADJUSTMENT_RANGE, 0)


def set_status_boost(config: PriorityConfig, status: str, value: Any) -> PriorityConfig:
    return _set_mapping_value(config, lambda c: c.tasks.status_boosts, status, value, STATUS_BOOST_RANGE, 0)


def set_conflict_penalty(config: PriorityConfig, severity: str, value: Any) -> PriorityConfig:
    return _set_mapping_value(config, lambda c: c.timeline.conflict_penalties, severity, value,
                              CONFLICT_PENALTY_RANGE, 0)


def add_cross_label_rule(config: PriorityConfig, prefix: str, description: str = '', weight: int = 10,
                         case_insensitive: bool = True) -> PriorityConfig:
    """Append a label-prefix rule

    Rules are unique by prefix: adding a prefix that already has a rule
    replaces that rule in place instead of adding a second one.
    """
    next_config = clone(config)
    next_config.email.cross_label_rules.append(CrossLabelRule(
        prefix=prefix, description=description or prefix, weight=weight, case_insensitive=case_insensitive))
    return _commit(config, next_config)


def update_cross_label_rule(config: PriorityConfig, index: int,
                            updater: Callable[[CrossLabelRule], CrossLabelRule]) -> PriorityConfig:
    rules = config.email.cross_label_rules
    if not 0 <= index < len(rules):
        return config
    next_config = clone(config)
    next_config.email.cross_label_rules[index] = updater(next_config.email.cross_label_rules[index])
    return _commit(config, next_config)


def remove_cross_label_rule(config: PriorityConfig, index: int) -> PriorityConfig:
    next_config = clone(config)
    next_config.email.cross_label_rules = [
        rule for i, rule in enumerate(next_config.email.cross_label_rules) if i != index]
    return next_config


def add_advanced_boost(config: PriorityConfig, id_generator: Optional[IdGenerator] = None) -> PriorityConfig:
    next_config = clone(config)
    next_config.email.advanced_boosts.append(AdvancedBoost(
        id=(id_generator or uuid_id_generator)('boost'),
        label='New boost',
        weight=5,
        criteria=BoostCriteria(),
    ))
    return next_config


def update_advanced_boost(config: PriorityConfig, index: int,
                          updater: Callable[[AdvancedBoost], AdvancedBoost]) -> PriorityConfig:
    if not 0 <= index < len(config.email.advanced_boosts):
        return config
    next_config = clone(config)
    next_config.email.advanced_boosts[index] = updater(next_config.email.advanced_boosts[index])
    return _commit(config, next_config)


def remove_advanced_boost(config: PriorityConfig, index: int) -> PriorityConfig:
    next_config = clone(config)
    next_config.email.advanced_boosts = [
        boost for i, boost in enumerate(next_config.email.advanced_boosts) if i != index]
    return next_config


def add_action_rule(config: PriorityConfig, id_generator: Optional[IdGenerator] = None) -> PriorityConfig:
    next_config = clone(config)
    next_config.email.action_rules.append(ActionRule(
        id=(id_generator or uuid_id_generator)('action'),
        label='New action',
        action_type='playbook',
        triage_states=['unassigned'],
        min_priority=0,
    ))
    return next_config


def update_action_rule(config: PriorityConfig, index: int,
                       updater: Callable[[ActionRule], ActionRule]) -> PriorityConfig:
    if not 0 <= index < len(config.email.action_rules):
        return config
    next_config = clone(config)
    next_config.email.action_rules[index] = updater(next_config.email.action_rules[index])
    return _commit(config, next_config)


def remove_action_rule(config: PriorityConfig, index: int) -> PriorityConfig:
    next_config = clone(config)
    next_config.email.action_rules = [rule for i, rule in enumerate(next_config.email.action_rules) if i != index]
    return next_config


def set_scheduling_timezone(config: PriorityConfig, timezone: str) -> PriorityConfig:
    next_config = clone(config)
    if isinstance(timezone, str) and timezone.strip():
        next_config.scheduling.timezone = timezone.strip()
    return next_config


def add_schedule_entry(config: PriorityConfig, preset_slug: str = '',
                       id_generator: Optional[IdGenerator] = None) -> PriorityConfig:
    next_config = clone(config)
    next_config.scheduling.entries.append(ScheduleEntry(
        id=(id_generator or uuid_id_generator)('schedule'),
        preset_slug=preset_slug,
    ))
    return next_config


def update_schedule_entry(config: PriorityConfig, index: int,
                          updater: Callable[[ScheduleEntry], ScheduleEntry]) -> PriorityConfig:
    if not 0 <= index < len(config.scheduling.entries):
        return config
    next_config = clone(config)
    next_config.scheduling.entries[index] = updater(next_config.scheduling.entries[index])
    return _commit(config, next_config)


def remove_schedule_entry(config: PriorityConfig, index: int) -> PriorityConfig:
    next_config = clone(config)
    next_config.scheduling.entries = [entry for i, entry in enumerate(next_config.scheduling.entries) if i != index]
    return next_config


def export_config(config: PriorityConfig, today: date) -> Tuple[str, str]:
    """Filename and pretty-printed JSON for a config export"""
    filename = f'priority-config-{today.isoformat()}.json'
    return filename, json.dumps(config.to_json_dict(), indent=2)


def import_config(text: str, id_generator: Optional[IdGenerator] = None) -> PriorityConfig:
    """Parse and normalize an exported config; raises ValidationError"""
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError) as e:
        logger.warning(f"Config import is not valid JSON: {e}")
        raise ValidationError(IMPORT_ERROR_MESSAGE) from e
    try:
        return normalize(parsed, id_generator=id_generator)
    except ValidationError as e:
        raise ValidationError(IMPORT_ERROR_MESSAGE) from e


class ConfigEditor:
    """Session state for the settings editor

    Holds the persisted ``baseline`` and the locally edited ``current`` config.
    Only one save may be in flight. Every load/save is tagged with the session
    token current when it was issued; results arriving after the session was
    invalidated are dropped rather than applied.

    ``client`` is any object exposing ``get_config()``, ``put_config(config)``,
    ``reset_config(categories)`` and ``apply_preset(slug)`` that return the
    service payload dicts.
    """

    def __init__(self, client, presets: Optional[PresetManager] = None,
                 id_generator: Optional[IdGenerator] = None):
        self.client = client
        self.presets = presets or PresetManager()
        self.id_generator = id_generator
        self.session_token = 0
        self.baseline = clone(DEFAULT_PRIORITY_CONFIG)
        self.current = clone(DEFAULT_PRIORITY_CONFIG)
        self.source = 'default'
        self.updated_at: Optional[str] = None
        self.saving = False
        self.error: Optional[str] = None
        self.message: Optional[str] = None

    @property
    def is_dirty(self) -> bool:
        return not is_equal(self.baseline, self.current)

    def invalidate_session(self) -> int:
        """Start a new session; in-flight results from the old one are ignored"""
        self.session_token += 1
        self.saving = False
        return self.session_token

    def edit(self, updater: Callable[..., PriorityConfig], *args, **kwargs) -> PriorityConfig:
        self.current = updater(self.current, *args, **kwargs)
        return self.current

    def _accept(self, payload: Dict[str, Any]):
        config = normalize(payload.get('config'), id_generator=self.id_generator)
        self.baseline = clone(config)
        self.current = clone(config)
        self.source = payload.get('source', 'custom')
        self.updated_at = payload.get('updatedAt')

    def _is_current(self, token: int) -> bool:
        if token != self.session_token:
            logger.debug(f"Dropping result for stale session token {token}")
            return False
        return True

    def begin_load(self) -> int:
        self.error = None
        return self.session_token

    def complete_load(self, token: int, payload: Optional[Dict[str, Any]] = None,
                      error: Optional[Exception] = None) -> bool:
        if not self._is_current(token):
            return False
        if error is not None or payload is None:
            logger.warning(f"Priority config load failed, using defaults: {error}")
            self.baseline = clone(DEFAULT_PRIORITY_CONFIG)
            self.current = clone(DEFAULT_PRIORITY_CONFIG)
            self.source = 'default'
            self.error = str(error) if error else 'Failed to load priority configuration'
            return True
        self._accept(payload)
        return True

    def load(self) -> bool:
        token = self.begin_load()
        try:
            payload = self.client.get_config()
        except Exception as e:
            return self.complete_load(token, error=e)
        return self.complete_load(token, payload=payload)

    def begin_save(self) -> Tuple[int, PriorityConfig]:
        if self.saving:
            raise SaveInProgressError('A save is already in progress')
        self.saving = True
        self.error = None
        self.message = None
        return self.session_token, clone(self.current)

    def complete_save(self, token: int, payload: Optional[Dict[str, Any]] = None,
                      error: Optional[Exception] = None, success_message: str = 'Priority configuration saved.') -> bool:
        if not self._is_current(token):
            return False
        self.saving = False
        if error is not None or payload is None:
            # local edits stay in place; nothing is rolled back
            logger.warning(f"Priority config save failed: {error}")
            self.error = str(error) if error else 'Failed to save priority configuration'
            return True
        self._accept(payload)
        self.message = success_message
        return True

    def save(self) -> bool:
        token, snapshot = self.begin_save()
        try:
            payload = self.client.put_config(snapshot)
        except Exception as e:  # any client failure releases the save guard
            return self.complete_save(token, error=e)
        return self.complete_save(token, payload=payload)

    def apply_preset(self, slug: str) -> bool:
        """Replace the local config with the preset, then persist it"""
        preset = self.presets.get(slug)
        if preset is None:
            self.error = f'Unknown priority preset: {slug}'
            return False
        token, _ = self.begin_save()
        self.current = self.presets.apply(preset.slug)
        try:
            payload = self.client.apply_preset(preset.slug)
        except Exception as e:
            return self.complete_save(token, error=e)
        name = (payload.get('preset') or {}).get('name')
        return self.complete_save(token, payload=payload,
                                  success_message=f'{name} preset applied.' if name else 'Preset applied.')

    def reset(self, categories: Optional[Iterable[str]] = None) -> bool:
        """Reset all or the named category weights locally, then persist"""
        token, _ = self.begin_save()
        categories = list(categories) if categories else None
        self.current = self.presets.reset(self.current, categories).config
        try:
            payload = self.client.reset_config(categories)
        except Exception as e:
            return self.complete_save(token, error=e)
        return self.complete_save(token, payload=payload, success_message='Priority configuration reset.')

    def import_text(self, text: str) -> bool:
        """Load an export into ``current``; state is untouched on failure"""
        try:
            config = import_config(text, id_generator=self.id_generator)
        except ValidationError as e:
            self.error = e.message
            return False
        self.current = config
        self.error = None
        self.message = 'Imported configuration. Review changes and save to apply.'
        return True

    def export(self, today: date) -> Tuple[str, str]:
        return export_config(self.current, today)
