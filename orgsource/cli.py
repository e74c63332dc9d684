"""
Command line interface.

    orgsource [--env-files FILE ...] init-schema
    orgsource [--env-files FILE ...] rebuild [--entity ID]
    orgsource [--env-files FILE ...] execute ENTITY_ID PAYLOAD
"""
import argparse
import json
import logging
import os
import sys

from .config import EngineConfig, EventLogBackend
from .errors import ConfigError
from .factory import create_repository, event_log_factory
from .projections import ProjectionBuilder


class OrgSourceCli:
    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self):
        parser = argparse.ArgumentParser(description="orgsource event log tools.")
        parser.add_argument(
            '--env-files',
            type=str,
            nargs='+',
            help="Path to environment files.",
            default=[]
        )
        parser.add_argument('--log-level', type=str, default='WARNING', help="Logging level.")
        subparsers = parser.add_subparsers(dest="command", help="Subcommand to run")
        subparsers.add_parser('init-schema', help="Create the PostgreSQL event table.")

        rebuild = subparsers.add_parser('rebuild', help="Replay the event log and print statistics as JSON.")
        rebuild.add_argument('--entity', type=str, default=None, help="Only print this organization.")

        execute = subparsers.add_parser('execute', help="Execute a JSON command payload.")
        execute.add_argument('entity_id', type=str)
        execute.add_argument('payload', type=str, help="JSON payload, or '-' to read it from stdin.")
        return parser

    def load_config(self, args) -> EngineConfig:
        for env_file in args.env_files:
            if not os.path.isfile(env_file):
                self.parser.error(f"{env_file} file not found.")
        config = EngineConfig(env_files=args.env_files)
        try:
            config.validate_env_vars()
        except ConfigError as e:
            self.parser.error(str(e))
        return config

    def init_schema(self, config: EngineConfig) -> int:
        if config.event_log_backend != EventLogBackend.postgres:
            self.parser.error("init-schema requires ORGSOURCE_EVENT_LOG=postgres")
        event_log_factory.get(config).create_schema()
        print("Schema ready.")
        return 0

    def rebuild(self, config: EngineConfig, entity_id: str = None) -> int:
        builder = ProjectionBuilder()
        builder.rebuild(event_log_factory.get(config))
        entity_ids = [entity_id] if entity_id else sorted(
            eid for eid in builder.views if builder.view(eid) is not None)
        organizations = []
        for eid in entity_ids:
            view = builder.view(eid)
            if view is None:
                print(f"Organization {eid} not found.", file=sys.stderr)
                return 1
            organizations.append({**view.as_dict(), 'statistics': builder.statistics(eid).as_dict()})
        report = {
            'organizations': organizations,
            'roots': builder.roots(),
            'size_distribution': builder.size_distribution(),
            'location_distribution': builder.location_distribution(),
        }
        print(json.dumps(report, indent=2))
        return 0

    def execute(self, config: EngineConfig, entity_id: str, payload: str) -> int:
        raw = sys.stdin.read() if payload == '-' else payload
        try:
            data = json.loads(raw)
        except ValueError as e:
            self.parser.error(f"Payload is not valid JSON: {e}")
        result = create_repository(config).execute_payload(entity_id, data)
        print(json.dumps(result.as_dict(), indent=2))
        return 0 if result.ok else 1

    def run(self, argv=None) -> int:
        args = self.parser.parse_args(argv)
        logging.basicConfig(level=args.log_level.upper())
        if args.command is None:
            self.parser.print_help()
            return 2
        config = self.load_config(args)
        if args.command == 'init-schema':
            return self.init_schema(config)
        if args.command == 'rebuild':
            return self.rebuild(config, args.entity)
        return self.execute(config, args.entity_id, args.payload)


def main():
    sys.exit(OrgSourceCli().run())


if __name__ == "__main__":
    main()
