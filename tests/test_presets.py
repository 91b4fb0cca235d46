"""
Tests for presets, category weight reset and the schedule window predicate
"""

import unittest
from datetime import datetime, timezone

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from priority_engine.config import (
    DEFAULT_PRIORITY_CONFIG,
    BUILTIN_PRESETS,
    PresetManager,
    ScheduleEntry,
    clone,
    is_equal,
    is_schedule_entry_active,
    normalize,
)
from priority_engine.errors import PresetNotFoundError

# Monday
MONDAY_NOON = datetime(2024, 5, 6, 12, 0, tzinfo=timezone.utc)


class TestPresets(unittest.TestCase):
    def setUp(self):
        self.manager = PresetManager()

    def test_builtin_catalogue(self):
        slugs = [preset.slug for preset in self.manager.list_presets()]
        self.assertEqual(slugs, ['touring-season', 'release-campaign', 'off-season', 'legal-focus'])
        summary = BUILTIN_PRESETS[0].summary()
        self.assertNotIn('overrides', summary)
        self.assertIn('recommendedScenarios', summary)

    def test_apply_replaces_wholesale(self):
        """Test applying a preset ignores whatever was configured before"""
        config = self.manager.apply('touring-season')
        self.assertEqual(config.email.category_weights['LOGISTICS/Travel'], 96)
        self.assertEqual(config.email.category_weights['FAN/Request'], 28)
        self.assertEqual(config.email.unread_bonus, 22)
        self.assertEqual(config.timeline.conflict_penalties['error'], 40)
        self.assertEqual(config.timeline.dependency_penalties.finish_to_start, 16)
        self.assertTrue(is_equal(config, normalize(BUILTIN_PRESETS[0].overrides)))

    def test_every_preset_normalizes(self):
        for preset in BUILTIN_PRESETS:
            with self.subTest(slug=preset.slug):
                self.assertFalse(is_equal(self.manager.apply(preset.slug), DEFAULT_PRIORITY_CONFIG))

    def test_slug_lookup(self):
        """Test slugs fall back to lower case and unknown slugs raise"""
        self.assertEqual(self.manager.get('Legal-Focus').slug, 'legal-focus')
        self.assertIsNone(self.manager.get('missing'))
        with self.assertRaises(PresetNotFoundError) as ctx:
            self.manager.apply('missing')
        self.assertEqual(ctx.exception.slug, 'missing')


class TestReset(unittest.TestCase):
    def setUp(self):
        self.manager = PresetManager()
        self.config = normalize({'email': {
            'categoryWeights': {'FAN/Request': 50, 'NEW/Label': 10},
            'unreadBonus': 30,
        }})

    def test_reset_all(self):
        """Test a full reset restores every category weight and nothing else"""
        result = self.manager.reset(self.config)
        self.assertEqual(result.config.email.category_weights, DEFAULT_PRIORITY_CONFIG.email.category_weights)
        self.assertEqual(result.reset_categories, ['FAN/Request', 'NEW/Label'])
        self.assertEqual(result.config.email.unread_bonus, 30)
        self.assertEqual(self.config.email.category_weights['FAN/Request'], 50)

    def test_reset_named(self):
        """Test named resets only report categories that actually changed"""
        result = self.manager.reset(self.config, ['FAN/Request', ' ', 'FAN/Request', 'LEGAL/Compliance', 7])
        self.assertEqual(result.reset_categories, ['FAN/Request'])
        self.assertEqual(result.config.email.category_weights['FAN/Request'], 28)
        self.assertEqual(result.config.email.category_weights['NEW/Label'], 10)

    def test_reset_unchanged_config(self):
        result = self.manager.reset(clone(DEFAULT_PRIORITY_CONFIG))
        self.assertEqual(result.reset_categories, [])


class TestScheduleWindow(unittest.TestCase):
    def entry(self, start, end=None, days=(1,)):
        return ScheduleEntry(id='s', preset_slug='off-season', days_of_week=list(days), start_time=start,
                             end_time=end)

    def test_window_predicate(self):
        """Test day/time windows, open ends and windows that wrap past midnight"""
        test_cases = [
            {'entry': self.entry('09:00', '17:00'), 'now': MONDAY_NOON, 'tz': 'UTC',
             'expected': True, 'description': 'Inside a daytime window'},
            {'entry': self.entry('09:00', '12:00'), 'now': MONDAY_NOON, 'tz': 'UTC',
             'expected': False, 'description': 'End time is exclusive'},
            {'entry': self.entry('12:00', '13:00'), 'now': MONDAY_NOON, 'tz': 'UTC',
             'expected': True, 'description': 'Start time is inclusive'},
            {'entry': self.entry('09:00', '17:00', days=(2,)), 'now': MONDAY_NOON, 'tz': 'UTC',
             'expected': False, 'description': 'Wrong day'},
            {'entry': self.entry('07:00', '09:00'), 'now': MONDAY_NOON, 'tz': 'America/New_York',
             'expected': True, 'description': 'Evaluated in the configured timezone'},
            {'entry': self.entry('07:00', '09:00'), 'now': MONDAY_NOON, 'tz': 'Not/AZone',
             'expected': False, 'description': 'Unknown timezone falls back to UTC'},
            {'entry': self.entry('10:00'), 'now': datetime(2024, 5, 6, 23, 59, tzinfo=timezone.utc), 'tz': 'UTC',
             'expected': True, 'description': 'Open end runs until midnight'},
            {'entry': self.entry('10:00'), 'now': datetime(2024, 5, 7, 0, 30, tzinfo=timezone.utc), 'tz': 'UTC',
             'expected': False, 'description': 'Open end stops at midnight'},
            {'entry': self.entry('22:00', '02:00'), 'now': datetime(2024, 5, 6, 23, 0, tzinfo=timezone.utc),
             'tz': 'UTC', 'expected': True, 'description': 'Overnight window before midnight'},
            {'entry': self.entry('22:00', '02:00'), 'now': datetime(2024, 5, 7, 1, 0, tzinfo=timezone.utc),
             'tz': 'UTC', 'expected': True, 'description': 'Overnight window belongs to the start day'},
            {'entry': self.entry('22:00', '02:00'), 'now': datetime(2024, 5, 6, 1, 0, tzinfo=timezone.utc),
             'tz': 'UTC', 'expected': False, 'description': 'Overnight window from the previous day only'},
            {'entry': self.entry('22:00', '02:00'), 'now': datetime(2024, 5, 7, 3, 0, tzinfo=timezone.utc),
             'tz': 'UTC', 'expected': False, 'description': 'After an overnight window'},
            {'entry': self.entry('12:00', '12:00'), 'now': MONDAY_NOON, 'tz': 'UTC',
             'expected': False, 'description': 'Empty window'},
            {'entry': self.entry('09:00', '17:00', days=(0,)), 'now': datetime(2024, 5, 5, 10, 0), 'tz': 'UTC',
             'expected': True, 'description': 'Sunday is day zero; naive times read as UTC'},
        ]
        for case in test_cases:
            with self.subTest(case=case['description']):
                self.assertEqual(is_schedule_entry_active(case['entry'], case['now'], case['tz']),
                                 case['expected'], case['description'])

    def test_active_entries(self):
        """Test only auto-apply entries with a preset are reported"""
        config = normalize({'scheduling': {'timezone': 'UTC', 'entries': [
            {'id': 'on', 'presetSlug': 'off-season', 'daysOfWeek': [1], 'startTime': '09:00'},
            {'id': 'manual', 'presetSlug': 'off-season', 'daysOfWeek': [1], 'startTime': '09:00',
             'autoApply': False},
            {'id': 'blank', 'daysOfWeek': [1], 'startTime': '09:00'},
            {'id': 'later', 'presetSlug': 'legal-focus', 'daysOfWeek': [1], 'startTime': '18:00'},
        ]}})
        active = PresetManager().active_schedule_entries(config, MONDAY_NOON)
        self.assertEqual([entry.id for entry in active], ['on'])


if __name__ == '__main__':
    unittest.main()
