# Copyright Materialize, Inc. and contributors. All rights reserved.
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file at the root of this repository.
#
# As of the Change Date specified in that file, in accordance with
# the Business Source License, use of this software will be governed
# by the Apache License, Version 2.0.

"""Count log lines that record a given internal event."""

import mmap
import re
from dataclasses import dataclass, field
from pathlib import Path

from risecheck import ui
from risecheck.errors import Failed
from risecheck.ui import UIError

DEFAULT_GLOB = "compute-node*.log"
DEFAULT_PATTERN = "state_table: delete range"
DEFAULT_LABEL = "delete_ranges"
DEFAULT_NOTE = "After implementing dynamic-filter cache, this number should be 0."
RULE = "^" * 37


@dataclass
class LogCount:
    pattern: str
    files: list[Path] = field(default_factory=list)
    per_file: dict[Path, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.per_file.values())


def compile_pattern(pattern: str, regex: bool = False) -> re.Pattern[bytes]:
    source = pattern.encode("utf-8")
    try:
        return re.compile(source if regex else re.escape(source))
    except re.error as e:
        raise UIError(f"invalid pattern {pattern!r}: {e}") from e


def count_in_file(path: Path, pattern: re.Pattern[bytes]) -> int:
    """Returns the number of lines in `path` that contain `pattern`.

    A line counts once, however often the pattern occurs in it.
    """
    count = 0
    with open(path, "rb") as f:
        try:
            data = mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ)
        except ValueError:
            # empty file
            return 0
        with data:
            for line in iter(data.readline, b""):
                if pattern.search(line):
                    count += 1
    return count


def count_matches(
    log_dir: Path,
    glob: str = DEFAULT_GLOB,
    pattern: str = DEFAULT_PATTERN,
    regex: bool = False,
) -> LogCount:
    """Counts the lines containing `pattern` across the logs matching `glob`.

    Raises:
        UIError: No file in `log_dir` matches `glob`.
    """
    files = sorted(p for p in log_dir.glob(glob) if p.is_file())
    if not files:
        raise UIError(
            f"no log files matching {glob!r} in {log_dir}",
            hint="the dev cluster writes its logs to .risingwave/log once started",
        )
    compiled = compile_pattern(pattern, regex)
    # files are scanned separately, so an unterminated last line never joins
    # the first line of the next file as it would under `cat | rg`
    result = LogCount(pattern=pattern, files=files)
    for path in files:
        result.per_file[path] = count_in_file(path, compiled)
    return result


def report(
    count: LogCount,
    label: str = DEFAULT_LABEL,
    note: str | None = DEFAULT_NOTE,
    per_file: bool = False,
) -> None:
    """Prints the count to stdout, followed by a rule and an explanatory note."""
    if per_file:
        for path, n in count.per_file.items():
            ui.say(f"{path.name}: {n}")
    print(f"number of {label}: {count.total}")
    if note:
        print(RULE)
        print(note)


def check(
    count: LogCount,
    label: str = DEFAULT_LABEL,
    expect: int | None = None,
    max: int | None = None,
) -> None:
    """Raises `Failed` if the count is not `expect` or exceeds `max`."""
    if expect is not None and count.total != expect:
        raise Failed(f"expected {expect} {label}, found {count.total}")
    if max is not None and count.total > max:
        raise Failed(f"expected at most {max} {label}, found {count.total}")
