"""
Selection of UI actions for a scored entity
"""
import logging
from typing import List, Optional

from ..config.schema import ActionRule, PriorityConfig
from .entities import Capability, EngineCapabilities, PriorityEntity

logger = logging.getLogger(__name__)


class ActionRuleMatcher:
    """Filters the configured action rules down to those that apply to an entity"""

    def __init__(self, capabilities: Optional[EngineCapabilities] = None):
        self.capabilities = capabilities if capabilities is not None else EngineCapabilities.all()

    def rule_applies(self, rule: ActionRule, entity: PriorityEntity, score: float) -> bool:
        if rule.min_priority is not None and score < rule.min_priority:
            return False
        if rule.categories:
            category = (entity.category or '').lower()
            if not any(category == value.lower() for value in rule.categories):
                return False
        if rule.triage_states:
            state = entity.triage_state or 'unassigned'
            if state not in rule.triage_states:
                return False
        return True

    def select_for(self, entity: PriorityEntity, score: float, config: PriorityConfig) -> List[ActionRule]:
        """Applicable rules in config order; an empty list is a valid answer"""
        if Capability.ACTION_RULES not in self.capabilities:
            return []
        selected = [rule for rule in config.email.action_rules if self.rule_applies(rule, entity, score)]
        logger.debug(f"Selected {len(selected)} of {len(config.email.action_rules)} action rule(s)")
        return selected
