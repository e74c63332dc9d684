import json
import logging
from typing import Callable, List, Optional, Sequence

import psycopg2
import psycopg2.errors

from orgsource.errors import ConcurrencyConflict
from orgsource.events import DomainEvent, event_from_dict

from .base import EventLog

logger = logging.getLogger(__name__)

TABLE_NAME = 'organization_events'

CREATE_TABLE_QUERY = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    position BIGSERIAL PRIMARY KEY,
    entity_id VARCHAR(64) NOT NULL,
    version INTEGER NOT NULL,
    event_id VARCHAR(64) NOT NULL UNIQUE,
    event_type VARCHAR(64) NOT NULL,
    payload JSONB NOT NULL,
    occurred_at TIMESTAMPTZ NOT NULL,
    UNIQUE (entity_id, version)
)"""

CREATE_INDEX_QUERY = f"CREATE INDEX IF NOT EXISTS {TABLE_NAME}_entity_idx ON {TABLE_NAME} (entity_id, version)"


class PostgreSQLEventLog(EventLog):
    """
    EventLog stored in a PostgreSQL table.

    The ``UNIQUE (entity_id, version)`` constraint makes the conditional append
    atomic across processes: a concurrent writer that wins the race makes the
    insert fail with a unique violation, which is reported as a conflict.
    """

    def __init__(self, host: str, port: int, user: str, password: str, database: str,
                 connection_resolver: Optional[Callable] = None, connection_closer: Optional[Callable] = None):
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._database = database
        self._connection = None
        self._cursor = None

        if connection_resolver is None:
            self._connection_resolver = psycopg2.connect
        else:
            self._connection_resolver = connection_resolver

        self._connection_closer = connection_closer

    def __enter__(self):
        """Context manager entry point for creating DB connection."""
        self._connection = self.connect
        self._cursor = self._connection.cursor()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        """Context manager exit point for closing DB connection."""
        self.close_connection()

    def close_connection(self):
        if self._connection_closer:
            self._connection_closer(self)
        else:
            if self._cursor is not None:
                self._cursor.close()
                self._cursor = None

            if self._connection is not None:
                self._connection.close()
                self._connection = None

    @property
    def connect(self):
        return self._connection_resolver(
            host=self._host,
            port=self._port,
            user=self._user,
            password=self._password,
            database=self._database
        )

    def _execute_within_context(self, func, *args, **kwargs):
        """Run ``func`` on an open connection, opening one for the call if needed."""
        if self._cursor is not None:
            return func(*args, **kwargs)
        with self:
            return func(*args, **kwargs)

    def create_schema(self):
        """Create the events table and its index if they do not exist."""
        def _create():
            self._cursor.execute(CREATE_TABLE_QUERY)
            self._cursor.execute(CREATE_INDEX_QUERY)
            self._connection.commit()
        self._execute_within_context(_create)
        logger.info("Ensured table %s exists", TABLE_NAME)

    def _select_version(self, entity_id: str) -> int:
        self._cursor.execute(
            f"SELECT COALESCE(MAX(version), 0) FROM {TABLE_NAME} WHERE entity_id = %s", (entity_id,))
        row = self._cursor.fetchone()
        return int(row[0]) if row else 0

    def _append(self, entity_id: str, expected_version: int, events: Sequence[DomainEvent]) -> int:
        try:
            actual_version = self._select_version(entity_id)
            if actual_version != expected_version:
                self._connection.rollback()
                raise ConcurrencyConflict(entity_id, expected_version, actual_version)
            for event in events:
                self._cursor.execute(
                    f"INSERT INTO {TABLE_NAME} (entity_id, version, event_id, event_type, payload, occurred_at) "
                    f"VALUES (%s, %s, %s, %s, %s, %s)",
                    (
                        event.entity_id,
                        event.version,
                        event.event_id,
                        event.event_type,
                        json.dumps(event.as_dict(convert_datetime_to_iso_string=True)),
                        event.occurred_at,
                    )
                )
            self._connection.commit()
        except psycopg2.errors.UniqueViolation:
            self._connection.rollback()
            actual_version = self._select_version(entity_id)
            logger.warning("Lost append race on %s at version %d", entity_id, expected_version)
            raise ConcurrencyConflict(entity_id, expected_version, actual_version)
        except psycopg2.Error as ex:
            self._connection.rollback()
            logger.error("Error in SQL:\n%s", ex)
            raise ex
        return expected_version + len(events)

    def append(self, entity_id: str, expected_version: int, events: Sequence[DomainEvent]) -> int:
        self.check_batch(entity_id, expected_version, events)
        return self._execute_within_context(self._append, entity_id, expected_version, events)

    def _fetch_events(self, query: str, values=()) -> List[DomainEvent]:
        self._cursor.execute(query, values)
        events = []
        for (payload,) in self._cursor.fetchall():
            if isinstance(payload, (str, bytes)):
                payload = json.loads(payload)
            events.append(event_from_dict(payload))
        return events

    def read(self, entity_id: str, from_version: int = 0) -> List[DomainEvent]:
        return self._execute_within_context(
            self._fetch_events,
            f"SELECT payload FROM {TABLE_NAME} WHERE entity_id = %s AND version > %s ORDER BY version",
            (entity_id, from_version),
        )

    def read_all(self) -> List[DomainEvent]:
        return self._execute_within_context(
            self._fetch_events, f"SELECT payload FROM {TABLE_NAME} ORDER BY position")

    def current_version(self, entity_id: str) -> int:
        return self._execute_within_context(self._select_version, entity_id)
