"""
Scoring package for the priority engine
"""
from .actions import ActionRuleMatcher
from .blend import ManualWeightBlender
from .boosts import AdvancedBoostEngine, CrossLabelRuleSet
from .entities import (
    Capability,
    ConflictRef,
    DependencyRef,
    EngineCapabilities,
    PriorityEntity,
    ScoreBreakdown,
    ScoreComponent,
)
from .penalties import (
    ConflictDependencyPenaltyModel,
    TimelineConflict,
    TimelineDependency,
    attach_conflicts,
    compute_project_health,
    detect_timeline_conflicts,
)
from .scorer import PriorityScorer, ScoreCache, rank_entities, rank_top_actions, sort_scored, zone_for
from .weights import CategoryWeightTable, TimeDecayModel

__all__ = [
    'ActionRuleMatcher',
    'AdvancedBoostEngine',
    'Capability',
    'CategoryWeightTable',
    'ConflictDependencyPenaltyModel',
    'ConflictRef',
    'CrossLabelRuleSet',
    'DependencyRef',
    'EngineCapabilities',
    'ManualWeightBlender',
    'PriorityEntity',
    'PriorityScorer',
    'ScoreBreakdown',
    'ScoreCache',
    'ScoreComponent',
    'TimeDecayModel',
    'TimelineConflict',
    'TimelineDependency',
    'attach_conflicts',
    'compute_project_health',
    'detect_timeline_conflicts',
    'rank_entities',
    'rank_top_actions',
    'sort_scored',
    'zone_for',
]
