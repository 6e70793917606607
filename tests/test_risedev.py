# Copyright Materialize, Inc. and contributors. All rights reserved.
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file at the root of this repository.
#
# As of the Change Date specified in that file, in accordance with
# the Business Source License, use of this software will be governed
# by the Apache License, Version 2.0.

import os
from pathlib import Path
from unittest.mock import call, patch

import pytest

from risecheck.risedev import Risedev
from risecheck.spawn import CalledProcessError
from risecheck.ui import UIError


def test_restart_runs_kill_clean_dev_in_order() -> None:
    root = Path("/src/risingwave")
    with patch("risecheck.spawn.runv") as mock:
        Risedev(root).restart("full", rust_log="risingwave_stream=trace")

    assert [c.args[0] for c in mock.call_args_list] == [
        ["./risedev", "k"],
        ["./risedev", "clean-data"],
        ["./risedev", "d", "full"],
    ]
    assert all(c.kwargs["cwd"] == root for c in mock.call_args_list)
    # only the dev cluster gets a custom environment
    assert mock.call_args_list[0].kwargs["env"] is None
    assert mock.call_args_list[1].kwargs["env"] is None
    env = mock.call_args_list[2].kwargs["env"]
    assert env["RUST_LOG"] == "risingwave_stream=trace"
    assert env.get("PATH") == os.environ.get("PATH")


def test_dev_without_rust_log_inherits_environment() -> None:
    with patch("risecheck.spawn.runv") as mock:
        Risedev(Path("."), executable="risedev").dev("ci-1cn-1fe")
    assert mock.call_args == call(
        ["risedev", "d", "ci-1cn-1fe"], cwd=Path("."), env=None
    )


def test_failed_step_stops_restart() -> None:
    with patch("risecheck.spawn.runv") as mock:
        mock.side_effect = [None, CalledProcessError(1, ["./risedev", "clean-data"])]
        with pytest.raises(CalledProcessError):
            Risedev(Path(".")).restart()
    assert mock.call_count == 2


def test_missing_risedev_is_a_ui_error(tmp_path: Path) -> None:
    with pytest.raises(UIError) as exc:
        Risedev(tmp_path).kill()
    assert exc.value.hint is not None
    assert "RISINGWAVE_ROOT" in exc.value.hint


def test_log_dir() -> None:
    assert Risedev(Path("/rw")).log_dir == Path("/rw/.risingwave/log")
