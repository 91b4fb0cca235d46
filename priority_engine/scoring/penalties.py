"""
Timeline conflict detection, conflict/dependency penalties and project health
"""
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from ..config.schema import HealthConfig, TimelineConfig
from ..config.validator import round_half_up
from .entities import ConflictRef, DependencyRef, EntityModel, PriorityEntity, ScoreBreakdown, ScoreComponent

logger = logging.getLogger(__name__)

FINISH_TO_START_KINDS = ('FS', 'FINISH_TO_START')


class TimelineConflict(EntityModel):
    id: str
    item_ids: Tuple[str, str]
    severity: str
    message: str


class TimelineDependency(EntityModel):
    from_item_id: str
    to_item_id: str
    kind: str = 'FS'


def detect_timeline_conflicts(items: Sequence[PriorityEntity], buffer_hours: float = 4) -> List[TimelineConflict]:
    """Find lane overlaps, same-territory clashes and tight travel gaps

    Only items with a start date take part. An end date that is missing or
    not after the start collapses the item to a point in time.
    """
    buffer_seconds = max(buffer_hours, 0) * 60 * 60
    scheduled = []
    for item in items:
        if item.starts_at is None or item.id is None:
            continue
        end = item.ends_at if item.ends_at and item.ends_at > item.starts_at else item.starts_at
        scheduled.append((item, item.starts_at, end))
    scheduled.sort(key=lambda entry: entry[1])

    conflicts: List[TimelineConflict] = []
    seen = set()

    def record(key: str, first: PriorityEntity, second: PriorityEntity, severity: str, message: str):
        if key in seen:
            return
        seen.add(key)
        conflicts.append(TimelineConflict(id=key, item_ids=(first.id, second.id), severity=severity, message=message))

    for i, (a, a_start, a_end) in enumerate(scheduled):
        for b, b_start, b_end in scheduled[i + 1:]:
            if a.id == b.id:
                continue

            if a.lane and a.lane == b.lane and a_end > b_start and b_end > a_start:
                record(f'{a.id}:{b.id}:lane', a, b, 'warning',
                       f'{a.title} overlaps with {b.title} in the {a.lane} lane')

            if a.territory and a.territory == b.territory:
                if abs((a_start - b_start).total_seconds()) < buffer_seconds:
                    record(f'{a.id}:{b.id}:territory', a, b, 'error',
                           f'{a.title} and {b.title} are both in {a.territory} without the {buffer_hours:g}h buffer')

            # scheduled is sorted, so a never starts after b
            if a.territory and b.territory and a.territory != b.territory:
                travel_gap = (b_start - a_end).total_seconds()
                if travel_gap < buffer_seconds:
                    hours_gap = max(0, round_half_up(travel_gap / 3600))
                    record(f'{a.id}:{b.id}:travel', a, b, 'warning',
                           f'{b.title} starts {hours_gap}h after {a.title} in a different territory')

    logger.debug(f"Detected {len(conflicts)} timeline conflict(s) across {len(scheduled)} item(s)")
    return conflicts


def build_conflict_index(conflicts: Sequence[TimelineConflict]) -> Dict[str, List[TimelineConflict]]:
    index: Dict[str, List[TimelineConflict]] = defaultdict(list)
    for conflict in conflicts:
        for item_id in conflict.item_ids:
            index[item_id].append(conflict)
    return dict(index)


def attach_conflicts(items: Sequence[PriorityEntity],
                     dependencies: Optional[Sequence[TimelineDependency]] = None,
                     conflicts: Optional[Sequence[TimelineConflict]] = None,
                     buffer_hours: float = 4) -> List[PriorityEntity]:
    """Copies of the timeline items with their conflicts and blockers filled in"""
    if conflicts is None:
        conflicts = detect_timeline_conflicts(items, buffer_hours=buffer_hours)
    index = build_conflict_index(conflicts)
    blockers: Dict[str, List[DependencyRef]] = defaultdict(list)
    for dependency in dependencies or []:
        blockers[dependency.to_item_id].append(
            DependencyRef(from_item_id=dependency.from_item_id, kind=dependency.kind))

    result = []
    for item in items:
        if item.kind != 'timeline' or item.id is None:
            result.append(item)
            continue
        result.append(item.model_copy(update={
            'conflicts': [ConflictRef(severity=c.severity, message=c.message) for c in index.get(item.id, [])],
            'blocked_by': list(blockers.get(item.id, [])),
        }))
    return result


class ConflictDependencyPenaltyModel:
    """Timeline penalties for scheduling conflicts and blocking predecessors"""

    def __init__(self, config: TimelineConfig):
        self.config = config

    def conflict_penalty(self, severity: str) -> int:
        penalties = self.config.conflict_penalties
        return penalties.get(severity, penalties.get('default', 0))

    def dependency_penalty(self, kind: str) -> int:
        if (kind or '').upper() in FINISH_TO_START_KINDS:
            return self.config.dependency_penalties.finish_to_start
        return self.config.dependency_penalties.other

    def components(self, entity: PriorityEntity) -> List[ScoreComponent]:
        components = []
        for conflict in entity.conflicts:
            penalty = self.conflict_penalty(conflict.severity)
            if penalty:
                components.append(ScoreComponent(
                    label=f'Conflict: {conflict.message}' if conflict.message else f'Conflict ({conflict.severity})',
                    value=-penalty,
                    detail=conflict.severity,
                ))

        if entity.blocked_by:
            penalty = sum(self.dependency_penalty(dependency.kind) for dependency in entity.blocked_by)
            count = len(entity.blocked_by)
            if penalty:
                components.append(ScoreComponent(
                    label=f"Blocked by {count} item{'' if count == 1 else 's'}",
                    value=-penalty,
                ))
        return components


def compute_project_health(open_tasks: int, conflicts: int, linked_emails: int,
                           config: HealthConfig) -> ScoreBreakdown:
    """Project health: base score minus capped per-item penalties, clamped"""
    components = [ScoreComponent(label='Base health', value=config.base_score)]
    for label, count, per_item, cap in (
        ('Open tasks', open_tasks, config.open_task_penalty_per_item, config.open_task_penalty_cap),
        ('Timeline conflicts', conflicts, config.conflict_penalty_per_item, config.conflict_penalty_cap),
        ('Linked emails', linked_emails, config.linked_email_penalty_per_item, config.linked_email_penalty_cap),
    ):
        penalty = min(cap, max(0, count) * per_item)
        if penalty:
            components.append(ScoreComponent(label=f'{label} ({count})', value=-penalty))

    raw_total = sum(component.value for component in components)
    total = min(config.max_score, max(config.min_score, raw_total))
    return ScoreBreakdown(total=total, components=tuple(components))
