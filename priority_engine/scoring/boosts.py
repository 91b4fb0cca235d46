"""
Label-prefix boosts and multi-criteria advanced boosts
"""
import logging
from typing import Iterable, List, Optional

from ..config.schema import AdvancedBoost, CrossLabelRule
from .entities import PriorityEntity

logger = logging.getLogger(__name__)


def _unique(labels: Iterable[str]) -> List[str]:
    seen = []
    for label in labels:
        if label not in seen:
            seen.append(label)
    return seen


def matches_cross_label_rule(rule: CrossLabelRule, label: str) -> bool:
    """Prefix match; case folding only affects the comparison"""
    if rule.case_insensitive:
        return label.lower().startswith(rule.prefix.lower())
    return label.startswith(rule.prefix)


class CrossLabelRuleSet:
    """Boosts keyed by label prefixes"""

    def __init__(self, rules: List[CrossLabelRule]):
        self.rules = rules

    def matching(self, labels: Iterable[str]) -> List[CrossLabelRule]:
        """Rules (in config order) matched by any of the labels"""
        unique_labels = _unique(labels)
        matched = []
        for rule in self.rules:
            if any(matches_cross_label_rule(rule, label) for label in unique_labels):
                logger.debug(f"Cross-label rule {rule.prefix!r} matched")
                matched.append(rule)
        return matched


def email_domain(address: Optional[str]) -> Optional[str]:
    if not address or not isinstance(address, str):
        return None
    parts = address.split('@')
    if len(parts) == 2 and parts[1]:
        return parts[1].lower()
    return None


class AdvancedBoostEngine:
    """Evaluates advanced boosts in config order

    Within a criterion kind any listed value may match; across kinds every
    non-empty criterion must match. ``min_priority`` is checked against the
    running score, which includes boosts applied earlier in the list.
    """

    def __init__(self, boosts: List[AdvancedBoost]):
        self.boosts = boosts

    def matches(self, boost: AdvancedBoost, entity: PriorityEntity, running_score: float) -> bool:
        criteria = boost.criteria

        if criteria.min_priority is not None and running_score < criteria.min_priority:
            return False

        if criteria.senders:
            sender = (entity.from_email or entity.from_name or '').lower()
            if not any(value.lower() in sender for value in criteria.senders):
                return False

        if criteria.domains:
            domain = email_domain(entity.from_email)
            if not domain or not any(domain == value.lower() for value in criteria.domains):
                return False

        if criteria.keywords:
            subject = (entity.subject or '').lower()
            if not any(keyword.lower() in subject for keyword in criteria.keywords):
                return False

        if criteria.labels:
            labels = [label.lower() for label in entity.labels]
            if not any(label.lower() in labels for label in criteria.labels):
                return False

        if criteria.categories:
            category = (entity.category or '').lower()
            if not any(category == value.lower() for value in criteria.categories):
                return False

        if criteria.has_attachment is not None:
            if criteria.has_attachment != bool(entity.has_attachments):
                return False

        return True

    def apply(self, entity: PriorityEntity, running_score: int) -> List[AdvancedBoost]:
        """Boosts that fire for the entity, updating the running score as they apply"""
        applied = []
        for boost in self.boosts:
            if self.matches(boost, entity, running_score):
                logger.debug(f"Advanced boost {boost.id} matched (+{boost.weight})")
                applied.append(boost)
                running_score += boost.weight
        return applied
