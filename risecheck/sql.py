# Copyright Materialize, Inc. and contributors. All rights reserved.
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file at the root of this repository.
#
# As of the Change Date specified in that file, in accordance with
# the Business Source License, use of this software will be governed
# by the Apache License, Version 2.0.

"""SQL access to the frontend of the cluster under test."""

import logging
import os
import ssl
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import pg8000
import sqlparse
from pg8000.exceptions import DatabaseError, InterfaceError

from risecheck import spawn, ui
from risecheck.ui import UIError

say = ui.speaker("sql> ")

CLIENTS = ["pg8000", "psql"]


@dataclass(frozen=True)
class ConnectionConfig:
    host: str = "localhost"
    port: int = 4566
    database: str = "dev"
    user: str = "root"
    password: str | None = None
    require_ssl: bool = False

    def __str__(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


class SqlError(UIError):
    """A statement was rejected by the server."""

    def __init__(self, statement: str, cause: Exception) -> None:
        super().__init__(f"statement failed: {cause}")
        self.statement = statement
        self.set_hint(f"while executing:\n{statement}")


class Database:
    """An API to the database under test."""

    def __init__(self, config: ConnectionConfig) -> None:
        logging.debug(
            f"Initialize Database with host={config.host} port={config.port}, user={config.user}"
        )

        if config.require_ssl:
            # verify_mode=ssl.CERT_REQUIRED is the default
            ssl_context = ssl.create_default_context()
        else:
            ssl_context = None

        self.config = config
        self.conn = pg8000.connect(
            host=config.host,
            port=config.port,
            user=config.user,
            password=config.password,
            database=config.database,
            ssl_context=ssl_context,
        )
        self.conn.autocommit = True

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        self.conn.close()

    def execute(self, statement: str) -> None:
        logging.debug(f"Execute {statement!r}")
        with self.conn.cursor() as cursor:
            try:
                cursor.execute(statement)
            except DatabaseError as e:
                raise SqlError(statement, e) from e

    def execute_all(self, statements: list[str]) -> None:
        for statement in statements:
            self.execute(statement)

    def query_one(self, query: str) -> tuple[Any, ...]:
        with self.conn.cursor() as cursor:
            cursor.execute(query)
            return cast(tuple[Any, ...], tuple(cursor.fetchone()))


def run_file(config: ConnectionConfig, path: Path) -> int:
    """Executes every statement of a *.sql file in order.

    Stops at the first statement the server rejects. Returns the number of
    statements executed.
    """
    statements = parse_from_file(path)
    say(f"running {len(statements)} statement(s) from {path.name} against {config}")
    with Database(config) as db:
        db.execute_all(statements)
    return len(statements)


def run_psql(config: ConnectionConfig, path: Path, psql: str = "psql") -> None:
    """Runs a *.sql file through the external `psql` client.

    Stdin is closed so that `psql` never waits for interactive input.
    """
    cmd = [
        psql,
        "-h",
        config.host,
        "-p",
        str(config.port),
        "-d",
        config.database,
        "-U",
        config.user,
        "-v",
        "ON_ERROR_STOP=1",
        "-f",
        str(path),
    ]
    env = None
    if config.password is not None:
        env = dict(os.environ, PGPASSWORD=config.password)
    try:
        spawn.runv(cmd, env=env, stdin=subprocess.DEVNULL)
    except FileNotFoundError as e:
        raise UIError(
            f"unable to run {psql}: {e.strerror}",
            hint="install the PostgreSQL client or use --client pg8000",
        ) from e


def run(config: ConnectionConfig, path: Path, client: str = "pg8000") -> None:
    """Runs a *.sql file with one of `CLIENTS`."""
    if client == "psql":
        run_psql(config, path)
    else:
        run_file(config, path)


def wait_for_frontend(config: ConnectionConfig, timeout: float = 60) -> None:
    """Waits until the frontend accepts connections and answers `SELECT 1`."""
    ui.progress(f"waiting for {config}", "sql")
    error: Exception | None = None
    for remaining in ui.timeout_loop(timeout):
        try:
            with Database(config) as db:
                db.query_one("SELECT 1")
            ui.progress(" up and responding!", finish=True)
            return
        except (InterfaceError, DatabaseError, OSError) as e:
            ui.progress(f" {int(remaining)}")
            error = e
    ui.progress(finish=True)
    raise UIError(
        f"{config} did not accept connections within {timeout:g}s: {error}",
        hint="check that the dev cluster started and its frontend listens on this port",
    )


# Utility functions
# -----------------


def parse_from_file(path: Path) -> list[str]:
    """Parses a *.sql file to a list of statements, skipping comment-only ones."""
    return [
        statement
        for statement in sqlparse.split(path.read_text())
        if sqlparse.format(statement, strip_comments=True).strip()
    ]
