"""
Workspace priority config storage and the operations exposed to callers
"""
import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .config.defaults import DEFAULT_PRIORITY_CONFIG
from .config.presets import PresetManager
from .config.schema import PriorityConfig
from .config.validator import IdGenerator, clone, is_equal, normalize
from .database.models import WorkspacePreference
from .errors import ConfigStoreError, ValidationError

logger = logging.getLogger(__name__)


def parse_stored_config(value: Optional[str], id_generator: Optional[IdGenerator] = None) -> Optional[PriorityConfig]:
    """Decode a stored JSON column; unreadable values count as absent"""
    if not value:
        return None
    try:
        return normalize(json.loads(value), id_generator=id_generator)
    except (TypeError, ValueError, ValidationError) as e:
        logger.warning(f"Stored priority config could not be parsed, using defaults: {e}")
        return None


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class PriorityConfigService:
    """Persists one priority config per workspace

    A workspace whose config equals the defaults stores NULL, so later changes
    to the built-in defaults reach it automatically.
    """

    def __init__(self, session_factory: sessionmaker, presets: Optional[PresetManager] = None,
                 id_generator: Optional[IdGenerator] = None):
        self.session_factory = session_factory
        self.presets = presets or PresetManager(id_generator=id_generator)
        self.id_generator = id_generator

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Priority config {operation} failed: {e}")
            raise ConfigStoreError(f'Failed to {operation} priority configuration') from e
        finally:
            db.close()

    @staticmethod
    def _preference(db: Session, workspace_id: str) -> Optional[WorkspacePreference]:
        return db.query(WorkspacePreference).filter(WorkspacePreference.workspace_id == workspace_id).one_or_none()

    def _payload(self, preference: Optional[WorkspacePreference]) -> Dict[str, Any]:
        stored = parse_stored_config(preference.priority_config, self.id_generator) if preference else None
        config = stored if stored is not None else clone(DEFAULT_PRIORITY_CONFIG)
        return {
            'config': config.to_json_dict(),
            'updatedAt': _isoformat(preference.priority_config_updated_at) if preference else None,
            'source': 'custom' if stored is not None else 'default',
        }

    def _store(self, db: Session, workspace_id: str, config: PriorityConfig) -> WorkspacePreference:
        preference = self._preference(db, workspace_id)
        if preference is None:
            preference = WorkspacePreference(workspace_id=workspace_id)
            db.add(preference)
        if is_equal(config, DEFAULT_PRIORITY_CONFIG):
            preference.priority_config = None
        else:
            preference.priority_config = json.dumps(config.to_json_dict())
        preference.priority_config_updated_at = datetime.now(timezone.utc)
        db.flush()
        logger.info(f"Stored priority config for workspace {workspace_id}")
        return preference

    def load_config(self, workspace_id: str) -> PriorityConfig:
        """The effective config object for a workspace"""
        with self._session('load') as db:
            stored = None
            preference = self._preference(db, workspace_id)
            if preference is not None:
                stored = parse_stored_config(preference.priority_config, self.id_generator)
            return stored if stored is not None else clone(DEFAULT_PRIORITY_CONFIG)

    def get_config(self, workspace_id: str) -> Dict[str, Any]:
        with self._session('load') as db:
            return self._payload(self._preference(db, workspace_id))

    def put_config(self, workspace_id: str, body: Any) -> Dict[str, Any]:
        """Validate and store a full config; ``body`` may wrap it as ``{config: ...}``"""
        if isinstance(body, dict) and 'config' in body:
            body = body['config']
        config = normalize(body, id_generator=self.id_generator)
        with self._session('save') as db:
            return self._payload(self._store(db, workspace_id, config))

    def reset_config(self, workspace_id: str, categories: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        with self._session('reset') as db:
            preference = self._preference(db, workspace_id)
            stored = parse_stored_config(preference.priority_config, self.id_generator) if preference else None
            result = self.presets.reset(stored if stored is not None else DEFAULT_PRIORITY_CONFIG, categories)
            payload = self._payload(self._store(db, workspace_id, result.config))
            payload['resetCategories'] = result.reset_categories
            return payload

    def apply_preset(self, workspace_id: str, slug: str) -> Dict[str, Any]:
        """Replace the workspace config with a preset; raises PresetNotFoundError"""
        config = self.presets.apply(slug)
        preset = self.presets.get(slug)
        with self._session('apply preset to') as db:
            payload = self._payload(self._store(db, workspace_id, config))
            payload['preset'] = {'slug': preset.slug, 'name': preset.name}
            return payload

    def list_presets(self) -> List[Dict[str, Any]]:
        return [preset.summary() for preset in self.presets.list_presets()]


class WorkspaceConfigClient:
    """Binds the service to one workspace for use by ConfigEditor"""

    def __init__(self, service: PriorityConfigService, workspace_id: str):
        self.service = service
        self.workspace_id = workspace_id

    def get_config(self) -> Dict[str, Any]:
        return self.service.get_config(self.workspace_id)

    def put_config(self, config: PriorityConfig) -> Dict[str, Any]:
        return self.service.put_config(self.workspace_id, config.to_json_dict())

    def reset_config(self, categories: Optional[List[str]] = None) -> Dict[str, Any]:
        return self.service.reset_config(self.workspace_id, categories)

    def apply_preset(self, slug: str) -> Dict[str, Any]:
        return self.service.apply_preset(self.workspace_id, slug)
