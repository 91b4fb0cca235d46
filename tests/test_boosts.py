"""
Tests for cross-label rules and advanced boosts
"""

import unittest
from datetime import datetime, timezone

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from priority_engine.config import DEFAULT_PRIORITY_CONFIG, AdvancedBoost, BoostCriteria, CrossLabelRule, clone
from priority_engine.scoring import AdvancedBoostEngine, CrossLabelRuleSet, PriorityEntity, PriorityScorer
from priority_engine.scoring.boosts import email_domain, matches_cross_label_rule

NOW = datetime(2024, 5, 6, 12, 0, tzinfo=timezone.utc)


class TestCrossLabelRules(unittest.TestCase):
    def test_prefix_matching(self):
        """Test prefix matching with and without case folding"""
        insensitive = CrossLabelRule(prefix='LEGAL/', description='Legal', weight=10)
        sensitive = CrossLabelRule(prefix='LEGAL/', description='Legal', weight=10, case_insensitive=False)
        test_cases = [
            (insensitive, 'LEGAL/Contract', True),
            (insensitive, 'legal/contract', True),
            (insensitive, 'FINANCE/LEGAL/', False),
            (sensitive, 'LEGAL/Contract', True),
            (sensitive, 'legal/contract', False),
        ]
        for rule, label, expected in test_cases:
            with self.subTest(label=label, case_insensitive=rule.case_insensitive):
                self.assertEqual(matches_cross_label_rule(rule, label), expected)

    def test_rule_applies_once(self):
        """Test a rule matched by several labels only counts once"""
        rules = CrossLabelRuleSet([CrossLabelRule(prefix='risk/', description='Risk', weight=24)])
        self.assertEqual(len(rules.matching(['risk/a', 'risk/b', 'RISK/c'])), 1)

    def test_rules_in_score(self):
        """Test matched rules appear in the breakdown under their description"""
        entity = PriorityEntity(kind='email', category='MISC/Uncategorized', triage_state='acknowledged',
                                labels=['Status/Escalated'], received_at=NOW)
        result = PriorityScorer().compute(entity, DEFAULT_PRIORITY_CONFIG, NOW)
        self.assertIn(('Escalated thread', 18), [(c.label, c.value) for c in result.components])


class TestAdvancedBoosts(unittest.TestCase):
    def setUp(self):
        self.config = clone(DEFAULT_PRIORITY_CONFIG)
        self.entity = PriorityEntity(
            kind='email',
            category='FINANCE/Invoice',
            triage_state='acknowledged',
            from_email='manager@VIP.com',
            from_name='Tour Manager',
            subject='Urgent: settlement figures',
            labels=['finance/settlement'],
            has_attachments=True,
            received_at=NOW,
        )

    def test_criteria(self):
        """Test each criterion kind, alone and combined"""
        test_cases = [
            {'criteria': BoostCriteria(), 'should_match': True, 'description': 'Empty criteria match everything'},
            {'criteria': BoostCriteria(domains=['vip.com']), 'should_match': True,
             'description': 'Domain compared case-insensitively'},
            {'criteria': BoostCriteria(domains=['other.com']), 'should_match': False,
             'description': 'Domain mismatch'},
            {'criteria': BoostCriteria(senders=['manager@']), 'should_match': True,
             'description': 'Sender substring'},
            {'criteria': BoostCriteria(keywords=['URGENT']), 'should_match': True,
             'description': 'Subject keyword'},
            {'criteria': BoostCriteria(labels=['Finance/Settlement']), 'should_match': True,
             'description': 'Label equality ignores case'},
            {'criteria': BoostCriteria(categories=['finance/invoice']), 'should_match': True,
             'description': 'Category equality ignores case'},
            {'criteria': BoostCriteria(has_attachment=False), 'should_match': False,
             'description': 'Attachment flag mismatch'},
            {'criteria': BoostCriteria(domains=['vip.com'], keywords=['contract']), 'should_match': False,
             'description': 'Every non-empty criterion must match'},
            {'criteria': BoostCriteria(domains=['other.com', 'vip.com'], keywords=['contract', 'urgent']),
             'should_match': True, 'description': 'Any value within a criterion may match'},
        ]
        for case in test_cases:
            with self.subTest(case=case['description']):
                boost = AdvancedBoost(id='b', label='Boost', weight=10, criteria=case['criteria'])
                engine = AdvancedBoostEngine([boost])
                self.assertEqual(engine.matches(boost, self.entity, 0), case['should_match'], case['description'])

    def test_vip_boost_in_score(self):
        """Test a matching boost adds its weight with its explanation as detail"""
        self.config.email.advanced_boosts = [
            AdvancedBoost(id='vip', label='VIP sender', weight=20, criteria=BoostCriteria(domains=['vip.com']),
                          explanation='Management always first'),
        ]
        result = PriorityScorer().compute(self.entity, self.config, NOW)
        self.assertEqual(result.total, 86 + 20 - 8)
        boost = [c for c in result.components if c.label == 'VIP sender'][0]
        self.assertEqual(boost.detail, 'Management always first')

    def test_min_priority_uses_running_score(self):
        """Test min priority sees boosts applied earlier in the list"""
        self.config.email.advanced_boosts = [
            AdvancedBoost(id='late', label='Late', weight=5, criteria=BoostCriteria(min_priority=95)),
            AdvancedBoost(id='base', label='Base', weight=10),
            AdvancedBoost(id='chained', label='Chained', weight=5, criteria=BoostCriteria(min_priority=95)),
        ]
        result = PriorityScorer().compute(self.entity, self.config, NOW)
        labels = [c.label for c in result.components]
        self.assertNotIn('Late', labels)
        self.assertIn('Base', labels)
        self.assertIn('Chained', labels)

    def test_email_domain(self):
        self.assertEqual(email_domain('a@Example.COM'), 'example.com')
        self.assertIsNone(email_domain('not-an-address'))
        self.assertIsNone(email_domain(None))


if __name__ == '__main__':
    unittest.main()
