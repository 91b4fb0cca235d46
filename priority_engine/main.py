#!/usr/bin/env python3
"""
Priority Engine - Main entry point
"""
import argparse
import json
import logging
import os
import sys
from datetime import date, datetime, timezone
from typing import List, Optional

import structlog
from dateutil import parser as date_parser
from dotenv import load_dotenv

from .config import PresetManager, PriorityConfig, export_config, import_config, normalize
from .database import init_db
from .errors import PriorityEngineError
from .scoring import (
    ActionRuleMatcher,
    Capability,
    EngineCapabilities,
    PriorityEntity,
    PriorityScorer,
    rank_entities,
    zone_for,
)
from .service import PriorityConfigService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = structlog.get_logger()

logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)


def parse_now(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    parsed = date_parser.isoparse(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def load_config(args) -> PriorityConfig:
    """Config from --config file, else the --workspace row, else defaults"""
    if getattr(args, 'config', None):
        with open(args.config, 'r') as f:
            return import_config(f.read())
    if getattr(args, 'workspace', None):
        service = PriorityConfigService(init_db())
        return service.load_config(args.workspace)
    return normalize(None)


def load_entities(path: str) -> List[PriorityEntity]:
    with open(path, 'r') as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get('items', [])
    return [PriorityEntity.model_validate(item) for item in data]


def command_score(args) -> int:
    config = load_config(args)
    now = parse_now(args.now)
    capabilities = EngineCapabilities.from_env(os.environ)
    scorer = PriorityScorer(capabilities)
    matcher = ActionRuleMatcher(capabilities)
    entities = load_entities(args.file)
    logger.info("Scoring entities", count=len(entities), now=now.isoformat())

    for entity, breakdown in rank_entities(entities, config, now, scorer=scorer):
        zone = zone_for(breakdown.total, entity.triage_state)
        print(f"{breakdown.total:>5}  {zone:<9} {entity.kind:<8} {entity.title or entity.subject or entity.id}")
        for component in breakdown.components:
            print(f"       {component.value:+d}  {component.label}")
        actions = matcher.select_for(entity, breakdown.total, config)
        if actions:
            print(f"       actions: {', '.join(rule.label for rule in actions)}")
    return 0


def command_presets(args) -> int:
    for preset in PresetManager().list_presets():
        print(f"{preset.slug:<20} {preset.name}")
        print(f"    {preset.description}")
    return 0


def command_export(args) -> int:
    config = load_config(args)
    filename, text = export_config(config, date.today())
    path = os.path.join(args.out, filename)
    with open(path, 'w') as f:
        f.write(text)
    logger.info("Exported priority configuration", path=path)
    print(path)
    return 0


def command_import(args) -> int:
    with open(args.file, 'r') as f:
        config = import_config(f.read())
    if args.workspace:
        service = PriorityConfigService(init_db())
        payload = service.put_config(args.workspace, config)
        logger.info("Imported priority configuration", workspace=args.workspace, source=payload['source'])
    else:
        logger.info("Priority configuration is valid",
                    categories=len(config.email.category_weights),
                    boosts=len(config.email.advanced_boosts))
    return 0


def command_schedule(args) -> int:
    if Capability.SCHEDULING not in EngineCapabilities.from_env(os.environ):
        logger.warning("Preset scheduling is disabled")
        return 0
    config = load_config(args)
    now = parse_now(args.now)
    entries = PresetManager().active_schedule_entries(config, now)
    if not entries:
        print('No active schedule entries')
    for entry in entries:
        print(f"{entry.id:<24} {entry.label or '-':<20} {entry.preset_slug}")
    return 0


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description='Priority Engine')
    subparsers = parser.add_subparsers(dest='command', required=True)

    score = subparsers.add_parser('score', help='Rank entities from a JSON file')
    score.add_argument('file', help='JSON list of entities, or an object with an "items" list')
    score.add_argument('--now', help='ISO-8601 evaluation time (default: current time)')
    score.set_defaults(handler=command_score)

    subparsers.add_parser('presets', help='List built-in presets').set_defaults(handler=command_presets)

    export = subparsers.add_parser('export', help='Write the configuration to a dated JSON file')
    export.add_argument('--out', default='.', help='Output directory')
    export.set_defaults(handler=command_export)

    import_ = subparsers.add_parser('import', help='Validate an exported configuration')
    import_.add_argument('file')
    import_.add_argument('--workspace', help='Store the configuration for this workspace')
    import_.set_defaults(handler=command_import)

    schedule = subparsers.add_parser('schedule', help='Show schedule entries active right now')
    schedule.add_argument('--now', help='ISO-8601 evaluation time (default: current time)')
    schedule.set_defaults(handler=command_schedule)

    for sub in (score, export, schedule):
        source = sub.add_mutually_exclusive_group()
        source.add_argument('--config', help='Exported configuration JSON file')
        source.add_argument('--workspace', help='Load the stored configuration for this workspace')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the Priority Engine"""
    args = parse_args(argv)
    load_dotenv()
    try:
        return args.handler(args)
    except PriorityEngineError as e:
        logger.error("Priority engine command failed", command=args.command, error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
