# Copyright Materialize, Inc. and contributors. All rights reserved.
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file at the root of this repository.
#
# As of the Change Date specified in that file, in accordance with
# the Business Source License, use of this software will be governed
# by the Apache License, Version 2.0.

"""Exceptions risecheck may throw.

All of them are `UIError`s, so `ui.error_handler` reports them without a
backtrace.
"""

from typing import Any, Iterable

from risecheck.ui import UIError


class CheckError(UIError):
    """All errors are CheckErrors"""


class ConfigurationError(CheckError):
    """An error that occurred because user-provided configuration was in error"""


class RuntimeFailure(CheckError):
    """Execution of a step failed"""


class UnknownItem(ConfigurationError):
    """A user specified something that we don't recognize"""

    def __init__(self, kind: str, item: Any, acceptable: Iterable[Any]) -> None:
        self.kind = kind
        self.item = item
        self.acceptable = list(acceptable)
        super().__init__(str(self))

    def __str__(self) -> str:
        val = f"Unknown {self.kind}: '{self.item}'"
        if self.acceptable:
            val += ". Expected one of: " + ", ".join([str(a) for a in self.acceptable])
        return val


class BadSpec(ConfigurationError):
    """User provided a bad workflow definition"""


class Failed(RuntimeFailure):
    """The check failed"""
