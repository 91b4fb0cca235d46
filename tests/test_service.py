"""
Service tests against an in-memory SQLite database
"""

import unittest
from unittest.mock import MagicMock

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.exc import OperationalError

from priority_engine.config import DEFAULT_PRIORITY_CONFIG, ConfigEditor, is_equal, normalize
from priority_engine.database import WorkspacePreference, create_session_factory
from priority_engine.errors import ConfigStoreError, PresetNotFoundError, ValidationError
from priority_engine.service import PriorityConfigService, WorkspaceConfigClient, parse_stored_config


class TestPriorityConfigService(unittest.TestCase):
    def setUp(self):
        self.session_factory = create_session_factory('sqlite://')
        self.service = PriorityConfigService(self.session_factory)

    def stored_value(self, workspace_id):
        db = self.session_factory()
        try:
            row = db.query(WorkspacePreference).filter_by(workspace_id=workspace_id).one_or_none()
            return row.priority_config if row else None
        finally:
            db.close()

    def test_unknown_workspace_gets_defaults(self):
        payload = self.service.get_config('ws-1')
        self.assertEqual(payload['source'], 'default')
        self.assertIsNone(payload['updatedAt'])
        self.assertTrue(is_equal(normalize(payload['config']), DEFAULT_PRIORITY_CONFIG))

    def test_put_and_get(self):
        """Test a stored config comes back as custom"""
        saved = self.service.put_config('ws-1', {'config': {'email': {'unreadBonus': 30}}})
        self.assertEqual(saved['source'], 'custom')
        self.assertIsNotNone(saved['updatedAt'])

        loaded = self.service.get_config('ws-1')
        self.assertEqual(loaded['config']['email']['unreadBonus'], 30)
        self.assertEqual(loaded['source'], 'custom')
        self.assertEqual(self.service.load_config('ws-1').email.unread_bonus, 30)

    def test_defaults_stored_as_null(self):
        """Test saving the defaults clears the stored value"""
        self.service.put_config('ws-1', {'email': {'unreadBonus': 30}})
        payload = self.service.put_config('ws-1', DEFAULT_PRIORITY_CONFIG.to_json_dict())
        self.assertEqual(payload['source'], 'default')
        self.assertIsNone(self.stored_value('ws-1'))

    def test_put_rejects_non_object(self):
        with self.assertRaises(ValidationError):
            self.service.put_config('ws-1', ['not', 'a', 'config'])

    def test_reset(self):
        self.service.put_config('ws-1', {'email': {'categoryWeights': {'FAN/Request': 50, 'FAN/Issues_or_Safety': 10},
                                                   'unreadBonus': 30}})
        payload = self.service.reset_config('ws-1', ['FAN/Request'])
        self.assertEqual(payload['resetCategories'], ['FAN/Request'])
        weights = payload['config']['email']['categoryWeights']
        self.assertEqual(weights['FAN/Request'], 28)
        self.assertEqual(weights['FAN/Issues_or_Safety'], 10)

        payload = self.service.reset_config('ws-1')
        self.assertEqual(payload['resetCategories'], ['FAN/Issues_or_Safety'])
        self.assertEqual(payload['config']['email']['unreadBonus'], 30)

    def test_apply_preset(self):
        payload = self.service.apply_preset('ws-1', 'Touring-Season')
        self.assertEqual(payload['preset'], {'slug': 'touring-season', 'name': 'Touring season'})
        self.assertEqual(payload['config']['email']['unreadBonus'], 22)
        with self.assertRaises(PresetNotFoundError):
            self.service.apply_preset('ws-1', 'missing')

    def test_list_presets(self):
        presets = self.service.list_presets()
        self.assertEqual(len(presets), 4)
        self.assertEqual(set(presets[0]), {'slug', 'name', 'description', 'recommendedScenarios', 'adjustments'})

    def test_corrupt_row_falls_back(self):
        """Test unreadable stored JSON is treated as no stored config"""
        db = self.session_factory()
        db.add(WorkspacePreference(workspace_id='ws-2', priority_config='{not json'))
        db.commit()
        db.close()
        self.assertEqual(self.service.get_config('ws-2')['source'], 'default')
        self.assertIsNone(parse_stored_config('[]'))

    def test_store_failure_wrapped(self):
        """Test database errors roll back and surface as ConfigStoreError"""
        session = MagicMock()
        session.query.side_effect = OperationalError('SELECT', {}, Exception('disk I/O error'))
        service = PriorityConfigService(lambda: session)
        with self.assertRaises(ConfigStoreError):
            service.get_config('ws-1')
        session.rollback.assert_called_once()
        session.close.assert_called_once()

    def test_editor_round_trip(self):
        """Test the editor persists through the service"""
        editor = ConfigEditor(WorkspaceConfigClient(self.service, 'ws-3'))
        editor.load()
        self.assertEqual(editor.source, 'default')
        editor.current.email.unread_bonus = 27
        self.assertTrue(editor.save())
        self.assertEqual(editor.source, 'custom')
        self.assertEqual(self.service.load_config('ws-3').email.unread_bonus, 27)

        editor.reset()
        self.assertEqual(self.service.get_config('ws-3')['source'], 'custom')
        editor.apply_preset('off-season')
        self.assertEqual(self.service.get_config('ws-3')['config']['email']['unreadBonus'], 8)


if __name__ == '__main__':
    unittest.main()
