"""
Blending of manual priorities with computed scores
"""
from typing import Optional

from ..config.schema import PriorityConfig
from ..config.validator import round_half_up


class ManualWeightBlender:
    """Mixes a human-entered priority into the automatic score per entity kind

    ``blended = computed * (1 - w) + manual * w`` with ``w`` taken from the
    timeline or tasks section. Emails carry no manual priority.

    The manual value is clamped to 0..100 and the blend rounded half-up, so
    with ``w == 1`` only integer manual values inside that range come back
    unchanged (150 gives 100, 55.5 gives 56).
    """

    def __init__(self, config: PriorityConfig):
        self.weights = {
            'timeline': config.timeline.manual_priority_weight,
            'task': config.tasks.manual_priority_weight,
        }

    def weight_for(self, kind: str) -> Optional[float]:
        return self.weights.get(kind)

    def blend(self, computed: int, manual_priority: Optional[float], kind: str) -> int:
        weight = self.weight_for(kind)
        if weight is None or manual_priority is None:
            return computed
        manual = min(100, max(0, manual_priority))
        return round_half_up(computed * (1 - weight) + manual * weight)
