"""
Priority scorer for emails, timeline items and tasks
"""
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config.schema import PriorityConfig
from ..config.validator import config_fingerprint, round_half_up
from .blend import ManualWeightBlender
from .boosts import AdvancedBoostEngine, CrossLabelRuleSet
from .entities import (
    Capability,
    EngineCapabilities,
    PriorityEntity,
    ScoreBreakdown,
    ScoreComponent,
    ensure_aware,
)
from .penalties import ConflictDependencyPenaltyModel
from .weights import CategoryWeightTable, TimeDecayModel, model_priority_value

logger = logging.getLogger(__name__)

CLOSED_STATUSES = ('done', 'completed')


class PriorityScorer:
    """Computes a score and its breakdown for one entity

    Steps run in a fixed order so the breakdown reads top to bottom: category
    weight, model priority, cross-label boosts, advanced boosts, time
    adjustment, unread bonus, triage adjustment, task status boost, snooze
    reduction, manual blend and finally timeline penalties. The total is the
    plain sum of the components and is never clamped here.
    """

    def __init__(self, capabilities: Optional[EngineCapabilities] = None):
        self.capabilities = capabilities if capabilities is not None else EngineCapabilities.all()

    def compute(self, entity: PriorityEntity, config: PriorityConfig, now: datetime) -> ScoreBreakdown:
        now = ensure_aware(now)
        email_config = config.email
        components: List[ScoreComponent] = []

        def running() -> int:
            return sum(component.value for component in components)

        def add(label: str, value: int, detail: Optional[str] = None):
            if value != 0:
                components.append(ScoreComponent(label=label, value=value, detail=detail))

        logger.debug(f"Scoring {entity.kind} {entity.id or '<unsaved>'}")

        # Category weight (tasks and timeline items only carry one when classified)
        if entity.kind == 'email' or entity.category is not None:
            table = CategoryWeightTable.from_config(email_config)
            add(f"Category {entity.category or 'uncategorized'}", table.weight_for(entity.category))

        if entity.model_score is not None:
            clamped = min(100, max(0, entity.model_score))
            add(f'Model priority {clamped:g}', model_priority_value(clamped, email_config.model_priority_weight))

        if Capability.CROSS_LABEL_RULES in self.capabilities:
            for rule in CrossLabelRuleSet(email_config.cross_label_rules).matching(entity.labels):
                add(rule.description, rule.weight, detail=rule.prefix)

        if Capability.ADVANCED_BOOSTS in self.capabilities:
            engine = AdvancedBoostEngine(email_config.advanced_boosts)
            for boost in engine.apply(entity, running()):
                add(boost.label, boost.weight, detail=boost.explanation or boost.description)

        decay = TimeDecayModel(config.time, email_config.idle_age)
        if entity.kind == 'email':
            idle = decay.idle_component(entity.received_at, now)
            if idle is not None:
                add(*idle)
        elif entity.kind == 'task':
            if entity.due_at is not None:
                dated = decay.date_component(entity.due_at, now, 'Due')
                if dated is not None:
                    add(*dated)
            else:
                add('No due date set', config.tasks.no_due_date_value)
        else:
            if entity.starts_at is not None:
                dated = decay.date_component(entity.starts_at, now, 'Starts')
            elif entity.ends_at is not None:
                dated = decay.date_component(entity.ends_at, now, 'Ends')
            else:
                dated = ('Undated timeline entry', config.timeline.undated_value)
            if dated is not None:
                add(*dated)

        if not entity.is_read:
            add('Unread in inbox', email_config.unread_bonus)

        if entity.kind == 'email':
            state = entity.triage_state or 'unassigned'
            add(f'Triage {state}', email_config.triage_state_adjustments.get(state, 0))

        if entity.kind == 'task' and entity.status:
            add(f'Status {entity.status}', config.tasks.status_boosts.get(entity.status, 0))

        if self._is_snoozed(entity, now):
            total = running()
            if total > 0:
                add('Snoozed', -round_half_up(total * email_config.snooze_age_reduction))

        if Capability.MANUAL_BLEND in self.capabilities and entity.manual_priority is not None:
            computed = running()
            blended = ManualWeightBlender(config).blend(computed, entity.manual_priority, entity.kind)
            add(f'Manual priority {entity.manual_priority:g}', blended - computed)

        if entity.kind == 'timeline' and Capability.CONFLICT_PENALTIES in self.capabilities:
            components.extend(ConflictDependencyPenaltyModel(config.timeline).components(entity))

        total = running()
        logger.debug(f"Scored {entity.kind} {entity.id or '<unsaved>'}: {total} from {len(components)} component(s)")
        return ScoreBreakdown(total=total, components=tuple(components))

    @staticmethod
    def _is_snoozed(entity: PriorityEntity, now: datetime) -> bool:
        return entity.triage_state == 'snoozed' and entity.snoozed_until is not None and entity.snoozed_until > now


class ScoreCache:
    """LRU cache of breakdowns keyed by entity id/version and config fingerprint

    Entities without an id are never cached.
    """

    def __init__(self, scorer: PriorityScorer, max_entries: int = 1024):
        self.scorer = scorer
        self.max_entries = max_entries
        self._entries: 'OrderedDict[Tuple, ScoreBreakdown]' = OrderedDict()
        self.hits = 0
        self.misses = 0

    def compute(self, entity: PriorityEntity, config: PriorityConfig, now: datetime,
                config_version: Optional[str] = None) -> ScoreBreakdown:
        if entity.id is None:
            return self.scorer.compute(entity, config, now)
        key = (entity.kind, entity.id, entity.version, config_version or config_fingerprint(config),
               ensure_aware(now))
        cached = self._entries.get(key)
        if cached is not None:
            self.hits += 1
            self._entries.move_to_end(key)
            return cached
        self.misses += 1
        result = self.scorer.compute(entity, config, now)
        self._entries[key] = result
        if len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return result

    def clear(self):
        self._entries.clear()


def zone_for(total: int, triage_state: Optional[str] = None) -> str:
    """Bucket a score into critical/high/medium/low; snoozed and resolved win"""
    if triage_state in ('snoozed', 'resolved'):
        return triage_state
    if total >= 80:
        return 'critical'
    if total >= 60:
        return 'high'
    if total >= 40:
        return 'medium'
    return 'low'


def sort_scored(scored: Iterable[Tuple[PriorityEntity, ScoreBreakdown]]) -> List[Tuple[PriorityEntity, ScoreBreakdown]]:
    """Highest total first; ties go to the most recent reference time"""
    def sort_key(pair):
        entity, breakdown = pair
        reference = entity.reference_time
        timestamp = reference.timestamp() if reference is not None else float('-inf')
        return (-breakdown.total, -timestamp)

    return sorted(scored, key=sort_key)


def rank_entities(entities: Iterable[PriorityEntity], config: PriorityConfig, now: datetime,
                  scorer: Optional[PriorityScorer] = None) -> List[Tuple[PriorityEntity, ScoreBreakdown]]:
    scorer = scorer or PriorityScorer()
    return sort_scored((entity, scorer.compute(entity, config, now)) for entity in entities)


def rank_top_actions(entities: Sequence[PriorityEntity], config: PriorityConfig, now: datetime,
                     limit: int = 5, scorer: Optional[PriorityScorer] = None) -> List[Tuple[PriorityEntity, ScoreBreakdown]]:
    """Highest scoring open tasks and timeline items for a project overview"""
    open_items = [
        entity for entity in entities
        if entity.kind in ('task', 'timeline') and (entity.status or '') not in CLOSED_STATUSES
    ]
    scorer = scorer or PriorityScorer()
    scored = [(entity, scorer.compute(entity, config, now)) for entity in open_items]
    scored.sort(key=lambda pair: -pair[1].total)
    return scored[:limit]
