# Copyright Materialize, Inc. and contributors. All rights reserved.
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file at the root of this repository.
#
# As of the Change Date specified in that file, in accordance with
# the Business Source License, use of this software will be governed
# by the Apache License, Version 2.0.

"""Drive a RisingWave dev cluster through the `risedev` tool."""

import logging
import os
import subprocess
from pathlib import Path

from risecheck import spawn, ui
from risecheck.ui import UIError

DEFAULT_PROFILE = "full"
DEFAULT_EXECUTABLE = "./risedev"
LOG_DIR = Path(".risingwave") / "log"

say = ui.speaker("risedev> ")


class Risedev:
    """A RisingWave checkout with a `risedev` script at its root.

    Every subcommand runs with the checkout as its working directory and fails
    fast: a non-zero exit raises `CalledProcessError`.
    """

    def __init__(self, root: Path, executable: str = DEFAULT_EXECUTABLE) -> None:
        self.root = root
        self.executable = executable

    def __str__(self) -> str:
        return f"Risedev<{self.root}>"

    @property
    def log_dir(self) -> Path:
        return self.root / LOG_DIR

    def kill(self) -> None:
        """Stop every component of a running dev cluster."""
        say("stopping the dev cluster")
        self._run(["k"])

    def clean_data(self) -> None:
        """Remove data persisted by previous runs."""
        say("cleaning persisted data")
        self._run(["clean-data"])

    def dev(
        self,
        profile: str = DEFAULT_PROFILE,
        rust_log: str | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        """Start a dev cluster with the given profile.

        Args:
            profile: The `risedev` profile to start, e.g. `full`.
            rust_log: If set, passed to the cluster as `RUST_LOG`.
            env: Additional environment variables for the cluster.
        """
        extra = dict(env or {})
        if rust_log is not None:
            extra["RUST_LOG"] = rust_log
        say(f"starting profile {profile!r}")
        for key, val in sorted(extra.items()):
            logging.debug(f"risedev env {key}={val}")
        self._run(["d", profile], env=extra)

    def restart(
        self, profile: str = DEFAULT_PROFILE, rust_log: str | None = None
    ) -> None:
        """Kill, clean and start the cluster, in that order."""
        self.kill()
        self.clean_data()
        self.dev(profile, rust_log=rust_log)

    def _run(
        self, args: list[str], env: dict[str, str] | None = None
    ) -> subprocess.CompletedProcess:
        cmd = [self.executable, *args]
        try:
            return spawn.runv(
                cmd,
                cwd=self.root,
                env=dict(os.environ, **env) if env else None,
            )
        except FileNotFoundError as e:
            raise UIError(
                f"unable to run {self.executable} in {self.root}: {e.strerror}",
                hint="pass --risingwave-root or set RISINGWAVE_ROOT to a RisingWave checkout",
            ) from e
