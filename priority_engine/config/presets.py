"""
Named presets, category resets and preset scheduling

Applying a preset replaces the whole configuration with the preset's
definition (defaults plus the preset's overrides). It is never merged into the
caller's current config: a section the preset does not mention is reset to its
default, not kept at the user's prior value.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from dateutil import tz
from pydantic import BaseModel, Field

from ..errors import PresetNotFoundError
from .defaults import DEFAULT_PRIORITY_CONFIG
from .schema import ConfigModel, PriorityConfig, ScheduleEntry
from .validator import IdGenerator, clone, normalize

logger = logging.getLogger(__name__)


class PriorityPreset(ConfigModel):
    """A named full-substitution configuration"""
    slug: str
    name: str
    description: str
    recommended_scenarios: List[str] = Field(default_factory=list)
    adjustments: List[str] = Field(default_factory=list)
    overrides: Dict[str, Any] = Field(default_factory=dict)

    def summary(self) -> Dict[str, Any]:
        """Listing shape: everything except the overrides payload"""
        return self.model_dump(by_alias=True, exclude={'overrides'})


class ResetResult(BaseModel):
    config: PriorityConfig
    reset_categories: List[str]


BUILTIN_PRESETS = [
    PriorityPreset(
        slug='touring-season',
        name='Touring season',
        description='Surfaces logistics, advancing and schedule conflicts while shows are on the road.',
        recommended_scenarios=['Active tour legs', 'Festival runs'],
        adjustments=[
            'Travel, visas and day sheets weighted near the top',
            'Heavier penalties for timeline conflicts',
            'Faster decay for far-off timeline items',
        ],
        overrides={
            'time': {'upcomingDecayPerDay': 6},
            'email': {
                'categoryWeights': {
                    'LOGISTICS/Itinerary_DaySheet': 94,
                    'LOGISTICS/Travel': 96,
                    'LOGISTICS/Accommodation': 86,
                    'LOGISTICS/Ground_Transport': 84,
                    'LOGISTICS/Technical_Advance': 90,
                    'PROMO/Promos_Submission': 35,
                },
                'unreadBonus': 22,
            },
            'timeline': {
                'conflictPenalties': {'error': 40, 'warning': 22, 'default': 22},
                'dependencyPenalties': {'finishToStart': 16, 'other': 8},
            },
        },
    ),
    PriorityPreset(
        slug='release-campaign',
        name='Release campaign',
        description='Prioritises promo requests, deliverables and assets around a release.',
        recommended_scenarios=['Single or album release', 'Press cycles'],
        adjustments=[
            'Promo and asset categories boosted',
            'Pending approvals weigh more',
        ],
        overrides={
            'email': {
                'categoryWeights': {
                    'PROMO/Promo_Time_Request': 90,
                    'PROMO/Press_Feature': 80,
                    'PROMO/Radio_Playlist': 76,
                    'PROMO/Deliverables': 88,
                    'ASSETS/Artwork': 78,
                    'ASSETS/Audio': 84,
                    'ASSETS/Video': 80,
                },
                'crossLabelRules': [
                    {'prefix': 'approval/', 'weight': 30, 'description': 'Pending approval', 'caseInsensitive': True},
                    {'prefix': 'risk/', 'weight': 24, 'description': 'Risk flagged', 'caseInsensitive': True},
                    {'prefix': 'status/escalated', 'weight': 18, 'description': 'Escalated thread',
                     'caseInsensitive': True},
                    {'prefix': 'status/pending_reply', 'weight': 14, 'description': 'Awaiting reply',
                     'caseInsensitive': True},
                ],
            },
            'tasks': {'manualPriorityWeight': 0.4},
        },
    ),
    PriorityPreset(
        slug='off-season',
        name='Off season',
        description='Calmer inbox: relies more on manual priorities and lets fan mail through.',
        recommended_scenarios=['Writing or studio time', 'Holidays'],
        adjustments=[
            'Lower unread bonus',
            'Fan categories raised',
            'Manual priorities weigh more on tasks and timeline',
        ],
        overrides={
            'email': {
                'categoryWeights': {
                    'FAN/Support_or_Thanks': 35,
                    'FAN/Request': 40,
                },
                'unreadBonus': 8,
                'snoozeAgeReduction': 0.8,
            },
            'tasks': {'manualPriorityWeight': 0.5},
            'timeline': {'manualPriorityWeight': 0.5},
        },
    ),
    PriorityPreset(
        slug='legal-focus',
        name='Legal & finance focus',
        description='Contracts, settlements and banking changes jump the queue.',
        recommended_scenarios=['Deal closing', 'Tour settlement week'],
        adjustments=[
            'Legal and finance categories at the top',
            'Risk-flagged threads boosted',
        ],
        overrides={
            'email': {
                'categoryWeights': {
                    'LEGAL/Contract_Draft': 96,
                    'LEGAL/Addendum_or_Amendment': 94,
                    'LEGAL/NDA_or_Clearance': 90,
                    'FINANCE/Settlement': 98,
                    'FINANCE/Invoice': 92,
                },
                'crossLabelRules': [
                    {'prefix': 'approval/', 'weight': 22, 'description': 'Pending approval', 'caseInsensitive': True},
                    {'prefix': 'risk/', 'weight': 36, 'description': 'Risk flagged', 'caseInsensitive': True},
                    {'prefix': 'status/escalated', 'weight': 18, 'description': 'Escalated thread',
                     'caseInsensitive': True},
                    {'prefix': 'status/pending_reply', 'weight': 14, 'description': 'Awaiting reply',
                     'caseInsensitive': True},
                ],
            },
        },
    ),
]


def _parse_minutes(value: str) -> int:
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def _resolve_timezone(timezone: Optional[str]):
    zone = tz.gettz(timezone) if timezone else None
    if zone is None:
        logger.debug(f"Unknown timezone {timezone!r}, falling back to UTC")
        return tz.UTC
    return zone


def is_schedule_entry_active(entry: ScheduleEntry, now: datetime, timezone: Optional[str]) -> bool:
    """Check whether a scheduling entry's window contains ``now``

    Days follow the 0=Sunday..6=Saturday convention. A missing end time keeps
    the window open until midnight; an end time before the start time wraps
    past midnight and still belongs to the start day.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz.UTC)
    local = now.astimezone(_resolve_timezone(timezone))
    day = (local.weekday() + 1) % 7
    previous_day = (day - 1) % 7
    minutes = local.hour * 60 + local.minute
    start = _parse_minutes(entry.start_time)

    if entry.end_time is None:
        return day in entry.days_of_week and minutes >= start

    end = _parse_minutes(entry.end_time)
    if end > start:
        return day in entry.days_of_week and start <= minutes < end
    if end == start:
        return False
    return (day in entry.days_of_week and minutes >= start) or \
        (previous_day in entry.days_of_week and minutes < end)


def _normalize_categories(categories: Optional[Iterable[Any]]) -> List[str]:
    if not categories:
        return []
    result: List[str] = []
    for entry in categories:
        if not isinstance(entry, str):
            continue
        trimmed = entry.strip()
        if trimmed and trimmed not in result:
            result.append(trimmed)
    return result


class PresetManager:
    """Preset catalogue plus reset and scheduling helpers"""

    def __init__(self, presets: Optional[List[PriorityPreset]] = None,
                 defaults: Optional[PriorityConfig] = None,
                 id_generator: Optional[IdGenerator] = None):
        self.presets = list(BUILTIN_PRESETS if presets is None else presets)
        self.defaults = defaults if defaults is not None else DEFAULT_PRIORITY_CONFIG
        self.id_generator = id_generator

    def list_presets(self) -> List[PriorityPreset]:
        return list(self.presets)

    def get(self, slug: str) -> Optional[PriorityPreset]:
        """Find a preset by slug, retrying with the lower-cased slug"""
        for candidate in (slug, slug.lower()):
            for preset in self.presets:
                if preset.slug == candidate:
                    return preset
        return None

    def apply(self, slug: str) -> PriorityConfig:
        """Build the full replacement config for a preset"""
        preset = self.get(slug)
        if preset is None:
            raise PresetNotFoundError(slug)
        logger.info(f"Applying priority preset {preset.slug}")
        return normalize(preset.overrides, base=self.defaults, id_generator=self.id_generator)

    def reset(self, config: PriorityConfig, categories: Optional[Iterable[Any]] = None) -> ResetResult:
        """Restore all or the named category weights to their defaults

        Only category weights are touched. The result lists the categories
        whose weight actually changed.
        """
        requested = _normalize_categories(categories)
        default_weights = self.defaults.email.category_weights
        next_config = clone(config)
        current = next_config.email.category_weights
        changed: List[str] = []

        if not requested:
            for category in sorted(set(current) | set(default_weights)):
                if current.get(category) != default_weights.get(category):
                    changed.append(category)
            next_config.email.category_weights = dict(default_weights)
        else:
            for category in requested:
                default_weight = default_weights.get(category, self.defaults.email.default_category_weight)
                if current.get(category) != default_weight:
                    changed.append(category)
                current[category] = default_weight

        logger.info(f"Reset {len(changed)} category weight(s)")
        return ResetResult(config=next_config, reset_categories=changed)

    def active_schedule_entries(self, config: PriorityConfig, now: datetime) -> List[ScheduleEntry]:
        """Auto-apply entries whose window is open at ``now``"""
        return [
            entry for entry in config.scheduling.entries
            if entry.auto_apply and entry.preset_slug and
            is_schedule_entry_active(entry, now, config.scheduling.timezone)
        ]
