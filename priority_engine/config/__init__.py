"""
Priority configuration: schema, defaults, validation, presets and editing
"""
from .defaults import DEFAULT_CATEGORY_WEIGHTS, DEFAULT_CROSS_LABEL_RULES, DEFAULT_PRIORITY_CONFIG, build_default_config
from .editor import ConfigEditor, export_config, import_config
from .presets import BUILTIN_PRESETS, PresetManager, PriorityPreset, ResetResult, is_schedule_entry_active
from .schema import (
    ActionRule,
    AdvancedBoost,
    BoostCriteria,
    CrossLabelRule,
    EmailConfig,
    PriorityConfig,
    ScheduleEntry,
    SchedulingConfig,
)
from .validator import IdGenerator, SequentialIdGenerator, clone, config_fingerprint, is_equal, normalize

__all__ = [
    'ActionRule',
    'AdvancedBoost',
    'BUILTIN_PRESETS',
    'BoostCriteria',
    'ConfigEditor',
    'CrossLabelRule',
    'DEFAULT_CATEGORY_WEIGHTS',
    'DEFAULT_CROSS_LABEL_RULES',
    'DEFAULT_PRIORITY_CONFIG',
    'EmailConfig',
    'IdGenerator',
    'PresetManager',
    'PriorityConfig',
    'PriorityPreset',
    'ResetResult',
    'ScheduleEntry',
    'SchedulingConfig',
    'SequentialIdGenerator',
    'build_default_config',
    'clone',
    'config_fingerprint',
    'export_config',
    'import_config',
    'is_equal',
    'is_schedule_entry_active',
    'normalize',
]
