# Copyright Materialize, Inc. and contributors. All rights reserved.
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file at the root of this repository.
#
# As of the Change Date specified in that file, in accordance with
# the Business Source License, use of this software will be governed
# by the Apache License, Version 2.0.

from pathlib import Path

import pytest

from risecheck import logscan
from risecheck.errors import Failed
from risecheck.ui import UIError

DELETE_RANGE = "2024-01-01T00:00:00Z TRACE risingwave_stream::common::table::state_table: delete range"


def write_logs(log_dir: Path, files: dict[str, list[str]]) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    for name, lines in files.items():
        (log_dir / name).write_text("".join(f"{line}\n" for line in lines))


def test_counts_matching_lines_across_compute_nodes(tmp_path: Path) -> None:
    write_logs(
        tmp_path,
        {
            "compute-node-5688.log": [DELETE_RANGE, "INFO started", DELETE_RANGE],
            "compute-node-5687.log": [DELETE_RANGE],
            # not a compute node, ignored
            "meta-node-5690.log": [DELETE_RANGE, DELETE_RANGE],
        },
    )
    count = logscan.count_matches(tmp_path)
    assert count.total == 3
    assert [p.name for p in count.files] == [
        "compute-node-5687.log",
        "compute-node-5688.log",
    ]
    assert count.per_file[tmp_path / "compute-node-5688.log"] == 2


def test_line_counts_once(tmp_path: Path) -> None:
    write_logs(tmp_path, {"compute-node-1.log": [f"{DELETE_RANGE} {DELETE_RANGE}"]})
    assert logscan.count_matches(tmp_path).total == 1


def test_last_line_without_newline(tmp_path: Path) -> None:
    (tmp_path / "compute-node-1.log").write_text(f"{DELETE_RANGE}\n{DELETE_RANGE}")
    assert logscan.count_matches(tmp_path).total == 2


def test_empty_log_counts_zero(tmp_path: Path) -> None:
    (tmp_path / "compute-node-1.log").write_bytes(b"")
    assert logscan.count_matches(tmp_path).total == 0


def test_pattern_is_literal_unless_regex(tmp_path: Path) -> None:
    write_logs(tmp_path, {"compute-node-1.log": ["a.b", "axb"]})
    assert logscan.count_matches(tmp_path, pattern="a.b").total == 1
    assert logscan.count_matches(tmp_path, pattern="a.b", regex=True).total == 2


def test_invalid_regex(tmp_path: Path) -> None:
    write_logs(tmp_path, {"compute-node-1.log": ["x"]})
    with pytest.raises(UIError):
        logscan.count_matches(tmp_path, pattern="(", regex=True)


def test_no_logs_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(UIError) as exc:
        logscan.count_matches(tmp_path)
    assert "compute-node*.log" in str(exc.value)


def test_non_utf8_lines_are_scanned(tmp_path: Path) -> None:
    (tmp_path / "compute-node-1.log").write_bytes(
        b"\xff\xfe garbage\n" + DELETE_RANGE.encode() + b" \xff\n"
    )
    assert logscan.count_matches(tmp_path).total == 1


def test_report(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_logs(tmp_path, {"compute-node-1.log": [DELETE_RANGE]})
    logscan.report(logscan.count_matches(tmp_path))
    assert capsys.readouterr().out.splitlines() == [
        "number of delete_ranges: 1",
        "^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^",
        "After implementing dynamic-filter cache, this number should be 0.",
    ]


def test_report_without_note(capsys: pytest.CaptureFixture[str]) -> None:
    count = logscan.LogCount(pattern="x", per_file={Path("a.log"): 4})
    logscan.report(count, label="things", note=None)
    assert capsys.readouterr().out == "number of things: 4\n"


def test_check() -> None:
    count = logscan.LogCount(pattern="x", per_file={Path("a.log"): 2})
    logscan.check(count)
    logscan.check(count, expect=2)
    logscan.check(count, max=2)
    with pytest.raises(Failed, match="expected 0 delete_ranges, found 2"):
        logscan.check(count, expect=0)
    with pytest.raises(Failed, match="at most 1"):
        logscan.check(count, max=1)


def test_unterminated_line_does_not_join_next_file(tmp_path: Path) -> None:
    # "state_table: " ends one file and "delete range" starts the next
    (tmp_path / "compute-node-1.log").write_text("x state_table: ")
    (tmp_path / "compute-node-2.log").write_text("delete range\n")
    assert logscan.count_matches(tmp_path).total == 0
