"""
Entity snapshots, score results and engine capabilities
"""
import enum
import os
from datetime import datetime
from typing import FrozenSet, Iterable, List, Literal, Optional, Tuple, Union

from dateutil import tz
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..config.schema import TriageState

EntityKind = Literal['email', 'timeline', 'task']


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Read naive datetimes as UTC"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=tz.UTC)
    return value


class EntityModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConflictRef(EntityModel):
    """A scheduling conflict affecting a timeline item"""
    severity: str = 'warning'
    message: str = ''


class DependencyRef(EntityModel):
    """A predecessor blocking a timeline item"""
    from_item_id: Optional[str] = None
    kind: str = 'FS'


class PriorityEntity(EntityModel):
    """Snapshot of an email, timeline item or task as seen by the scorer"""
    id: Optional[str] = None
    version: Optional[Union[int, str]] = None
    kind: EntityKind = 'email'
    title: Optional[str] = None
    project_id: Optional[str] = None
    category: Optional[str] = None
    labels: List[str] = Field(default_factory=list)
    received_at: Optional[datetime] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    due_at: Optional[datetime] = None
    is_read: bool = True
    triage_state: Optional[TriageState] = None
    snoozed_until: Optional[datetime] = None
    from_email: Optional[str] = None
    from_name: Optional[str] = None
    subject: Optional[str] = None
    has_attachments: Optional[bool] = None
    model_score: Optional[float] = None
    manual_priority: Optional[float] = None
    status: Optional[str] = None
    lane: Optional[str] = None
    territory: Optional[str] = None
    conflicts: List[ConflictRef] = Field(default_factory=list)
    blocked_by: List[DependencyRef] = Field(default_factory=list)

    @field_validator('received_at', 'starts_at', 'ends_at', 'due_at', 'snoozed_until')
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value)

    @property
    def reference_time(self) -> Optional[datetime]:
        """The date the entity is ranked by"""
        if self.kind == 'email':
            return self.received_at
        if self.kind == 'task':
            return self.due_at
        return self.starts_at or self.ends_at


class ScoreComponent(BaseModel):
    """One labeled, signed contribution to a score"""
    model_config = ConfigDict(frozen=True)

    label: str
    value: int
    detail: Optional[str] = None


class ScoreBreakdown(BaseModel):
    """Total score and the components it was built from, in evaluation order"""
    model_config = ConfigDict(frozen=True)

    total: int
    components: Tuple[ScoreComponent, ...] = ()

    def rationale(self) -> List[str]:
        """Human readable 'label (+n)' lines for non-zero components"""
        lines = []
        for component in self.components:
            if component.value == 0:
                continue
            sign = '+' if component.value > 0 else ''
            lines.append(f'{component.label} ({sign}{component.value})')
        return lines


class Capability(str, enum.Enum):
    CROSS_LABEL_RULES = 'cross_label_rules'
    ADVANCED_BOOSTS = 'advanced_boosts'
    ACTION_RULES = 'action_rules'
    CONFLICT_PENALTIES = 'conflict_penalties'
    MANUAL_BLEND = 'manual_blend'
    SCHEDULING = 'scheduling'


_TRUE_VALUES = ('1', 'true', 'on', 'enabled', 'yes')
_FALSE_VALUES = ('0', 'false', 'off', 'disabled', 'no')


def resolve_boolean_flag(value: Optional[str], default: bool) -> bool:
    """Tolerant env flag parsing; unrecognised values keep the default"""
    if not isinstance(value, str):
        return default
    normalised = value.strip().lower()
    if normalised in _FALSE_VALUES:
        return False
    if normalised in _TRUE_VALUES:
        return True
    return default


class EngineCapabilities:
    """Explicit set of enabled engine features

    Passed to the scorer and matchers instead of reading global flags, so each
    caller (and each test) decides what is switched on.
    """

    def __init__(self, enabled: Optional[Iterable[Capability]] = None):
        self.enabled: FrozenSet[Capability] = frozenset(Capability if enabled is None else enabled)

    @classmethod
    def all(cls) -> 'EngineCapabilities':
        return cls()

    @classmethod
    def none(cls) -> 'EngineCapabilities':
        return cls([])

    @classmethod
    def from_env(cls, environ=None) -> 'EngineCapabilities':
        """Read PRIORITY_FEATURE_<NAME> variables; every capability defaults to on"""
        environ = os.environ if environ is None else environ
        return cls([
            capability for capability in Capability
            if resolve_boolean_flag(environ.get(f'PRIORITY_FEATURE_{capability.name}'), True)
        ])

    def without(self, *capabilities: Capability) -> 'EngineCapabilities':
        return EngineCapabilities(self.enabled - set(capabilities))

    def __contains__(self, capability: Capability) -> bool:
        return capability in self.enabled

    def __eq__(self, other) -> bool:
        return isinstance(other, EngineCapabilities) and self.enabled == other.enabled

    def __hash__(self) -> int:
        return hash(self.enabled)

    def __repr__(self) -> str:
        names = ', '.join(sorted(capability.name for capability in self.enabled))
        return f'EngineCapabilities({names})'
