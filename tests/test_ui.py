# Copyright Materialize, Inc. and contributors. All rights reserved.
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file at the root of this repository.
#
# As of the Change Date specified in that file, in accordance with
# the Business Source License, use of this software will be governed
# by the Apache License, Version 2.0.

import subprocess
from unittest.mock import patch

import pytest

from risecheck import ui
from risecheck.errors import UnknownItem


def test_shell_quote() -> None:
    quoted = ui.shell_quote(["psql", "-f", "my queries.sql"])
    assert quoted == "psql -f 'my queries.sql'"


@pytest.mark.parametrize(
    "value,expected",
    [("1", True), ("yes", True), ("", False), ("0", False), ("no", False)],
)
def test_env_is_truthy(
    monkeypatch: pytest.MonkeyPatch, value: str, expected: bool
) -> None:
    monkeypatch.setenv("RISECHECK_TEST_FLAG", value)
    assert ui.env_is_truthy("RISECHECK_TEST_FLAG") is expected


def test_quiet_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RISECHECK_QUIET", "1")
    ui.Verbosity.init_from_env(None)
    assert ui.Verbosity.quiet
    ui.Verbosity.init_from_env(False)
    assert not ui.Verbosity.quiet


def test_wait_sleeps_for_the_whole_duration() -> None:
    clock = [0.0]

    def sleep(secs: float) -> None:
        clock[0] += secs

    with patch("risecheck.ui.time.monotonic", side_effect=lambda: clock[0]), patch(
        "risecheck.ui.time.sleep", side_effect=sleep
    ):
        ui.wait(100, tick=10)
    assert clock[0] == pytest.approx(100)


def test_error_handler_reports_ui_errors(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        with ui.error_handler("risecheck"):
            raise UnknownItem("scenario", "q999", ["q103"])
    assert exc.value.code == 1
    assert "Unknown scenario: 'q999'. Expected one of: q103" in capsys.readouterr().err


def test_error_handler_reports_failed_commands(
    capsys: pytest.CaptureFixture[str],
) -> None:
    with pytest.raises(SystemExit):
        with ui.error_handler("risecheck"):
            raise subprocess.CalledProcessError(2, ["./risedev", "d", "full"])
    assert "`./risedev d full` exited with status 2" in capsys.readouterr().err
