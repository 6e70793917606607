# Copyright Materialize, Inc. and contributors. All rights reserved.
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file at the root of this repository.
#
# As of the Change Date specified in that file, in accordance with
# the Business Source License, use of this software will be governed
# by the Apache License, Version 2.0.

"""Workflows: ordered lists of named steps run against a dev cluster.

The built-in `delete-range-check` workflow restarts the cluster from a clean
slate, loads a workload, lets it run and counts an event in the compute-node
logs. Other workflows can be described in a YAML file:

    workflows:
      quick:
        steps:
          - step: kill
          - step: clean-data
          - step: dev
            rust-log: risingwave_stream=trace
          - step: run-sql
          - step: sleep
            seconds: 10
          - step: count-log-lines
            max: 0
"""

from collections.abc import Callable, Collection
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

import yaml

from risecheck import logscan, sql, ui
from risecheck.errors import BadSpec, UnknownItem
from risecheck.risedev import DEFAULT_PROFILE, Risedev

T = TypeVar("T")

DEFAULT_WORKFLOW = "delete-range-check"
DEFAULT_RUST_LOG = "risingwave_stream=trace"
DEFAULT_SLEEP_SECS = 100.0


@dataclass
class Context:
    """Settings shared by every step of a workflow run.

    Steps read their defaults from here; arguments given to a step in a
    workflow file take precedence.
    """

    risedev: Risedev
    connection: sql.ConnectionConfig = field(default_factory=sql.ConnectionConfig)
    sql_files: list[Path] = field(default_factory=list)
    client: str = "pg8000"
    profile: str = DEFAULT_PROFILE
    rust_log: str | None = DEFAULT_RUST_LOG
    sleep_secs: float = DEFAULT_SLEEP_SECS
    log_glob: str = logscan.DEFAULT_GLOB
    pattern: str = logscan.DEFAULT_PATTERN
    regex: bool = False
    label: str = logscan.DEFAULT_LABEL
    note: str | None = logscan.DEFAULT_NOTE
    expect: int | None = None
    max: int | None = None
    last_count: logscan.LogCount | None = None


class Steps:
    """A registry of named `WorkflowStep`_"""

    _steps: dict[str, type["WorkflowStep"]] = {}

    @classmethod
    def named(cls, name: str) -> type["WorkflowStep"]:
        try:
            return cls._steps[name]
        except KeyError:
            raise UnknownItem("step", name, sorted(cls._steps))

    @classmethod
    def register(cls, name: str) -> Callable[[type[T]], type[T]]:
        if name in cls._steps:
            raise ValueError(f"Double registration of step name: {name}")

        def reg(to_register: type[T]) -> type[T]:
            if not issubclass(to_register, WorkflowStep):
                raise ValueError(
                    f"Registered step must be a WorkflowStep: {to_register}"
                )
            cls._steps[name] = to_register
            to_register.name = name
            return to_register  # type: ignore

        return reg

class WorkflowStep:
    """Perform a single action in a workflow"""

    # populated by Steps.register
    name: str
    """The name used to refer to this step in a workflow file"""

    def run(self, ctx: Context) -> None:
        """Perform the action specified by this step"""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}<{self.name}>"


class Workflow:
    """A workflow is a collection of WorkflowSteps, run in order."""

    def __init__(self, name: str, steps: list[WorkflowStep]) -> None:
        self.name = name
        self.steps = steps

    def overview(self) -> str:
        return "{} [{}]".format(self.name, " ".join([s.name for s in self.steps]))

    def __repr__(self) -> str:
        return f"Workflow<{self.overview()}>"

    def run(self, ctx: Context) -> None:
        ui.header(f"Running workflow {self.name}")
        for i, step in enumerate(self.steps, start=1):
            ui.header(f"[{i}/{len(self.steps)}] {step.name}")
            step.run(ctx)



def check_seconds(step: str, key: str, value: Any) -> None:
    # bool is an int subclass, but `seconds: yes` is never a duration
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise BadSpec(f"{step} {key} must be a non-negative number, got: {value!r}")


def check_count(step: str, key: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise BadSpec(f"{step} {key} must be a non-negative integer, got: {value!r}")


@Steps.register("kill")
class KillStep(WorkflowStep):
    def run(self, ctx: Context) -> None:
        ctx.risedev.kill()


@Steps.register("clean-data")
class CleanDataStep(WorkflowStep):
    def run(self, ctx: Context) -> None:
        ctx.risedev.clean_data()


@Steps.register("dev")
class DevStep(WorkflowStep):
    """
    Params:
        profile: The risedev profile to start (Default: from the command line)
        rust_log: RUST_LOG for the cluster (Default: from the command line)
        env: Extra environment variables for the cluster
    """

    def __init__(
        self,
        *,
        profile: str | None = None,
        rust_log: str | None = None,
        env: dict[str, Any] | None = None,
    ) -> None:
        if env is not None and not isinstance(env, dict):
            raise BadSpec(f"env should be a mapping, got: {env!r}")
        self._profile = profile
        self._rust_log = rust_log
        self._env = {k: str(v) for k, v in (env or {}).items()}

    def run(self, ctx: Context) -> None:
        ctx.risedev.dev(
            self._profile or ctx.profile,
            rust_log=self._rust_log if self._rust_log is not None else ctx.rust_log,
            env=self._env,
        )


@Steps.register("wait-for-frontend")
class WaitForFrontendStep(WorkflowStep):
    """
    Params:
        timeout_secs: How long to wait for the frontend (Default: 60)
    """

    def __init__(self, *, timeout_secs: float = 60) -> None:
        check_seconds(self.name, "timeout_secs", timeout_secs)
        self._timeout_secs = timeout_secs

    def run(self, ctx: Context) -> None:
        sql.wait_for_frontend(ctx.connection, self._timeout_secs)


@Steps.register("run-sql")
class RunSqlStep(WorkflowStep):
    """
    Params:
        files: SQL files to run, relative to the RisingWave checkout
            (Default: the scenario or files given on the command line)
        client: `pg8000` or `psql` (Default: from the command line)
    """

    def __init__(
        self, *, files: list[str] | None = None, client: str | None = None
    ) -> None:
        if files is not None and not isinstance(files, list):
            raise BadSpec(f"files should be a list, got: {files!r}")
        if client is not None and client not in sql.CLIENTS:
            raise UnknownItem("client", client, sql.CLIENTS)
        self._files = files
        self._client = client

    def run(self, ctx: Context) -> None:
        if self._files is not None:
            files = [ctx.risedev.root / f for f in self._files]
        else:
            files = ctx.sql_files
        if not files:
            raise BadSpec("run-sql has no SQL files to run")
        for path in files:
            sql.run(ctx.connection, path, self._client or ctx.client)


@Steps.register("sleep")
class SleepStep(WorkflowStep):
    """
    Params:
        seconds: How long to wait (Default: from the command line)
    """

    def __init__(self, *, seconds: float | None = None) -> None:
        check_seconds(self.name, "seconds", seconds)
        self._seconds = seconds

    def run(self, ctx: Context) -> None:
        seconds = self._seconds if self._seconds is not None else ctx.sleep_secs
        ui.wait(seconds, "for the workload to run")


@Steps.register("count-log-lines")
class CountLogLinesStep(WorkflowStep):
    """
    Params:
        pattern: Text to look for in each line
        regex: Treat `pattern` as a regular expression
        glob: Which files in the log directory to read
        label: Name of the counted event in the report
        note: Message printed under the count
        expect: Fail unless the count equals this number
        max: Fail if the count exceeds this number
    """

    _UNSET: Any = object()

    def __init__(
        self,
        *,
        pattern: str | None = None,
        regex: bool | None = None,
        glob: str | None = None,
        label: str | None = None,
        note: Any = _UNSET,
        expect: int | None = None,
        max: int | None = None,
    ) -> None:
        check_count(self.name, "expect", expect)
        check_count(self.name, "max", max)
        if expect is not None and max is not None:
            raise BadSpec("count-log-lines takes either expect or max, not both")
        self._pattern = pattern
        self._regex = regex
        self._glob = glob
        self._label = label
        self._note = note
        self._expect = expect
        self._max = max

    def run(self, ctx: Context) -> None:
        count = logscan.count_matches(
            ctx.risedev.log_dir,
            glob=self._glob or ctx.log_glob,
            pattern=self._pattern or ctx.pattern,
            regex=self._regex if self._regex is not None else ctx.regex,
        )
        ctx.last_count = count
        label = self._label or ctx.label
        logscan.report(
            count,
            label=label,
            note=ctx.note if self._note is self._UNSET else self._note,
        )

        if self._expect is not None or self._max is not None:
            expect, max = self._expect, self._max
        else:
            expect, max = ctx.expect, ctx.max
        logscan.check(count, label, expect=expect, max=max)


def default_workflow() -> Workflow:
    """Restart from a clean slate, load the workload, wait, count."""
    return Workflow(
        DEFAULT_WORKFLOW,
        [
            KillStep(),
            CleanDataStep(),
            DevStep(),
            RunSqlStep(),
            SleepStep(),
            CountLogLinesStep(),
        ],
    )


def restart_workflow() -> Workflow:
    return Workflow("restart", [KillStep(), CleanDataStep(), DevStep()])


def builtin_workflows() -> dict[str, Workflow]:
    return {w.name: w for w in [default_workflow(), restart_workflow()]}


def parse_workflows(raw: Any) -> dict[str, Workflow]:
    """Builds workflows from the parsed contents of a workflow file."""
    if not isinstance(raw, dict) or not isinstance(raw.get("workflows"), dict):
        raise BadSpec("a workflow file needs a top-level 'workflows' mapping")

    workflows = {}
    for workflow_name, raw_w in raw["workflows"].items():
        if not isinstance(raw_w, dict) or not isinstance(raw_w.get("steps"), list):
            raise BadSpec(f"workflow {workflow_name} needs a list of steps")
        built_steps = []
        for raw_step in raw_w["steps"]:
            if not isinstance(raw_step, dict) or "step" not in raw_step:
                raise BadSpec(
                    f"every step in workflow {workflow_name} needs a 'step' key, got: {raw_step!r}"
                )
            raw_step = dict(raw_step)
            step_name = raw_step.pop("step")
            step_ty = Steps.named(step_name)
            munged = {k.replace("-", "_"): v for k, v in raw_step.items()}
            try:
                step = step_ty(**munged)
            except TypeError as e:
                a = " ".join([f"{k}={v}" for k, v in munged.items()])
                raise BadSpec(f"Unable to construct {step_name} with args {a}: {e}")
            built_steps.append(step)
        workflows[workflow_name] = Workflow(workflow_name, built_steps)
    return workflows


def load_workflows(path: Path) -> dict[str, Workflow]:
    """Loads the workflows of a YAML file, on top of the built-in ones."""
    with path.open() as fh:
        try:
            raw = yaml.safe_load(fh)
        except yaml.YAMLError as e:
            raise BadSpec(f"unable to parse {path}: {e}")
    return {**builtin_workflows(), **parse_workflows(raw)}


def find_workflow(name: str, workflows: dict[str, Workflow]) -> Workflow:
    try:
        return workflows[name]
    except KeyError:
        raise UnknownItem("workflow", name, sorted(workflows))


def known_workflows(workflows: dict[str, Workflow]) -> Collection[Workflow]:
    return [workflows[name] for name in sorted(workflows)]
