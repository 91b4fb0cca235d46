"""
Schema for the priority scoring configuration

Every section uses snake_case attributes in Python and camelCase names on the
wire, so a config dumped with ``by_alias=True`` matches the exported JSON.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TriageState = Literal['unassigned', 'acknowledged', 'snoozed', 'resolved']
TRIAGE_STATES = ('unassigned', 'acknowledged', 'snoozed', 'resolved')

ActionType = Literal['playbook', 'create_lead', 'open_url', 'custom']
ACTION_TYPES = ('playbook', 'create_lead', 'open_url', 'custom')


class ConfigModel(BaseModel):
    """Base model for config sections"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeConfig(ConfigModel):
    """Date proximity scoring for timeline items and tasks"""
    upcoming_base_score: int = 45
    upcoming_decay_per_day: int = 4
    overdue_base_penalty: int = 25
    overdue_penalty_per_day: int = 6
    overdue_max_penalty: int = 60


class IdleAgeConfig(ConfigModel):
    """Idle age windows applied to emails waiting in the inbox"""
    short_window_hours: int = 4
    short_window_multiplier: float = 5
    medium_window_start_hours: int = 4
    medium_window_end_hours: int = 24
    medium_window_base: int = 16
    medium_window_multiplier: float = 2.2
    long_window_start_hours: int = 24
    long_window_base: int = 40
    long_window_multiplier: float = 1.5
    long_window_max_bonus: int = 28


class CrossLabelRule(ConfigModel):
    """Boost applied when any label starts with the prefix"""
    prefix: str
    description: str
    weight: int
    case_insensitive: bool = True


class BoostCriteria(ConfigModel):
    """Criteria for an advanced boost; empty lists and None act as wildcards"""
    senders: List[str] = Field(default_factory=list)
    domains: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    labels: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    has_attachment: Optional[bool] = None
    min_priority: Optional[float] = None


class AdvancedBoost(ConfigModel):
    """Multi-criteria conditional boost"""
    id: str
    label: str
    description: Optional[str] = None
    weight: int
    criteria: BoostCriteria = Field(default_factory=BoostCriteria)
    explanation: Optional[str] = None


class ActionRule(ConfigModel):
    """Action offered for an entity that passes the rule's gates"""
    id: str
    label: str
    description: Optional[str] = None
    action_type: ActionType = 'playbook'
    categories: List[str] = Field(default_factory=list)
    triage_states: List[TriageState] = Field(default_factory=list)
    min_priority: Optional[float] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None


class EmailConfig(ConfigModel):
    """Email scoring section"""
    category_weights: Dict[str, int] = Field(default_factory=dict)
    default_category_weight: int = 40
    model_priority_weight: float = 0.6
    unread_bonus: int = 18
    snooze_age_reduction: float = 0.65
    triage_state_adjustments: Dict[str, int] = Field(default_factory=lambda: {
        'unassigned': 12,
        'acknowledged': -8,
        'snoozed': -24,
        'resolved': -80,
    })
    cross_label_rules: List[CrossLabelRule] = Field(default_factory=list)
    idle_age: IdleAgeConfig = Field(default_factory=IdleAgeConfig)
    advanced_boosts: List[AdvancedBoost] = Field(default_factory=list)
    action_rules: List[ActionRule] = Field(default_factory=list)


class TaskConfig(ConfigModel):
    """Project task scoring section"""
    no_due_date_value: int = 10
    manual_priority_weight: float = 0.3
    status_boosts: Dict[str, int] = Field(default_factory=lambda: {'in_progress': 8, 'waiting': 4})


class DependencyPenalties(ConfigModel):
    finish_to_start: int = 10
    other: int = 6


class TimelineConfig(ConfigModel):
    """Timeline item scoring section"""
    undated_value: int = 6
    manual_priority_weight: float = 0.25
    conflict_penalties: Dict[str, int] = Field(default_factory=lambda: {
        'error': 25,
        'warning': 15,
        'default': 15,
    })
    dependency_penalties: DependencyPenalties = Field(default_factory=DependencyPenalties)


class HealthConfig(ConfigModel):
    """Project health score section"""
    base_score: int = 100
    min_score: int = 5
    max_score: int = 100
    open_task_penalty_per_item: int = 4
    open_task_penalty_cap: int = 45
    conflict_penalty_per_item: int = 7
    conflict_penalty_cap: int = 30
    linked_email_penalty_per_item: int = 2
    linked_email_penalty_cap: int = 20


class ScheduleEntry(ConfigModel):
    """Day/time window that marks a preset as active"""
    id: str
    label: str = 'Scheduled preset'
    preset_slug: str = ''
    days_of_week: List[int] = Field(default_factory=lambda: [1])
    start_time: str = '08:00'
    end_time: Optional[str] = None
    auto_apply: bool = True


class SchedulingConfig(ConfigModel):
    timezone: str = 'UTC'
    entries: List[ScheduleEntry] = Field(default_factory=list)


class PriorityConfig(ConfigModel):
    """Root priority configuration"""
    time: TimeConfig = Field(default_factory=TimeConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    tasks: TaskConfig = Field(default_factory=TaskConfig)
    timeline: TimelineConfig = Field(default_factory=TimelineConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)

    def to_json_dict(self) -> Dict[str, Any]:
        """Wire representation with camelCase keys"""
        return self.model_dump(mode='json', by_alias=True)
