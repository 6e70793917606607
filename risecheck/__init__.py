# Copyright Materialize, Inc. and contributors. All rights reserved.
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file at the root of this repository.
#
# As of the Change Date specified in that file, in accordance with
# the Business Source License, use of this software will be governed
# by the Apache License, Version 2.0.

"""Package `risecheck` drives a local RisingWave dev cluster through a smoke check.

The check restarts the cluster from a clean slate, loads a Nexmark workload,
lets it run for a while and then counts how often an internal event was logged
by the compute nodes. The cluster itself is external: everything here is a
thin layer over `risedev`, a SQL client and the log files it leaves behind.

Workloads ship with the package as pairs of SQL files:

  * `schema/<scenario>.sql` creates the sources the scenario reads.
  * `query/<scenario>.sql` creates the sinks or views under test.
"""

from importlib import resources
from pathlib import Path
from typing import cast


def resource_path(name: str) -> Path:
    # NOTE: we have to do this cast because pyright is not comfortable with the
    # Traversable protocol.
    return cast(Path, resources.files(__package__)) / name


def scenarios() -> list[str]:
    """
    Determines a list of available scenarios based on the files located in the
    `query` resource path. A scenario does not need a matching `schema` file.
    """
    return sorted(
        p.name.removesuffix(".sql")
        for p in resource_path("query").iterdir()
        if p.is_file() and p.name.endswith(".sql")
    )


class Scenario:
    def __init__(self, value: str) -> None:
        self.value = value

    def schema_path(self) -> Path | None:
        path = resource_path(f"schema/{self}.sql")
        return path if path.is_file() else None

    def query_path(self) -> Path:
        return resource_path(f"query/{self}.sql")

    def paths(self) -> list[Path]:
        """The SQL files to run, in order: sources first, then queries."""
        schema = self.schema_path()
        return ([schema] if schema is not None else []) + [self.query_path()]

    def __str__(self) -> str:
        return self.value
