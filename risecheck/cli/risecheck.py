# Copyright Materialize, Inc. and contributors. All rights reserved.
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file at the root of this repository.
#
# As of the Change Date specified in that file, in accordance with
# the Business Source License, use of this software will be governed
# by the Apache License, Version 2.0.

#
# risecheck.py - restart a RisingWave dev cluster, load a Nexmark workload and
# count an internal event in the compute-node logs.

import logging
from pathlib import Path
from typing import Any

import click

from risecheck import Scenario, logscan, scenarios, sql, ui, workflow
from risecheck.risedev import DEFAULT_PROFILE, Risedev

DEFAULT_SCENARIO = "q103"

# Click CLI Application
# ---------------------


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option("-v", "--verbose", is_flag=True, help="Log debug output.")
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress progress output. Also set by RISECHECK_QUIET.",
)
def app(verbose: bool, quiet: bool) -> None:
    """Smoke-check a local RisingWave dev cluster."""
    if verbose:
        logging.basicConfig(encoding="utf-8", level=logging.DEBUG)
    ui.Verbosity.init_from_env(quiet or None)


class Arg:
    scenario: dict[str, Any] = dict(
        type=click.Choice(scenarios()),
        default=DEFAULT_SCENARIO,
        required=False,
        callback=lambda ctx, param, value: Scenario(value),  # type: ignore
    )


class Opt:
    risingwave_root: dict[str, Any] = dict(
        default=".",
        type=click.Path(
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
        ),
        envvar="RISINGWAVE_ROOT",
        show_default=True,
        help="RisingWave checkout containing the risedev script.",
        callback=lambda ctx, param, value: Path(value),  # type: ignore
    )

    profile: dict[str, Any] = dict(
        default=DEFAULT_PROFILE,
        show_default=True,
        help="risedev profile to start.",
    )

    rust_log: dict[str, Any] = dict(
        default=workflow.DEFAULT_RUST_LOG,
        show_default=True,
        help="RUST_LOG for the dev cluster. Pass an empty string to inherit.",
    )

    sleep: dict[str, Any] = dict(
        type=click.FloatRange(min=0),
        default=workflow.DEFAULT_SLEEP_SECS,
        show_default=True,
        help="Seconds to let the workload run before reading the logs.",
    )

    client: dict[str, Any] = dict(
        type=click.Choice(sql.CLIENTS),
        default="pg8000",
        show_default=True,
        help="How to run SQL files.",
    )

    sql_file: dict[str, Any] = dict(
        type=click.Path(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
        multiple=True,
        help="SQL file to run instead of the scenario. May be repeated.",
        callback=lambda ctx, param, values: [Path(v) for v in values],  # type: ignore
    )

    pattern: dict[str, Any] = dict(
        default=logscan.DEFAULT_PATTERN,
        show_default=True,
        help="Text counted in each log line.",
    )

    regex: dict[str, Any] = dict(
        is_flag=True,
        default=False,
        help="Treat --pattern as a regular expression.",
    )

    log_glob: dict[str, Any] = dict(
        default=logscan.DEFAULT_GLOB,
        show_default=True,
        help="Log files to read, relative to .risingwave/log.",
    )

    expect: dict[str, Any] = dict(
        type=click.IntRange(min=0),
        default=None,
        help="Fail unless exactly this many lines match.",
    )

    max: dict[str, Any] = dict(
        type=click.IntRange(min=0),
        default=None,
        help="Fail if more than this many lines match.",
    )

    workflow_file: dict[str, Any] = dict(
        type=click.Path(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
        default=None,
        help="YAML file with additional workflows.",
    )

    workflow_name: dict[str, Any] = dict(
        default=workflow.DEFAULT_WORKFLOW,
        show_default=True,
        help="Workflow to run.",
    )

    db_host: dict[str, Any] = dict(
        default="localhost",
        help="DB connection host.",
        envvar="PGHOST",
    )

    db_port: dict[str, Any] = dict(
        default=4566,
        help="DB connection port.",
        envvar="PGPORT",
    )

    db_name: dict[str, Any] = dict(
        default="dev",
        help="DB connection database.",
        envvar="PGDATABASE",
    )

    db_user: dict[str, Any] = dict(
        default="root",
        help="DB connection user.",
        envvar="PGUSER",
    )

    db_pass: dict[str, Any] = dict(
        default=None,
        help="DB connection password.",
        envvar="PGPASSWORD",
    )

    db_require_ssl: dict[str, Any] = dict(
        is_flag=True,
        help="DB connection requires SSL.",
        envvar="PGREQUIRESSL",
    )


def connection_options(fn: Any) -> Any:
    for name, opt in reversed(
        [
            ("--db-host", Opt.db_host),
            ("--db-port", Opt.db_port),
            ("--db-name", Opt.db_name),
            ("--db-user", Opt.db_user),
            ("--db-pass", Opt.db_pass),
            ("--db-require-ssl", Opt.db_require_ssl),
        ]
    ):
        fn = click.option(name, **opt)(fn)
    return fn


def connection_config(
    db_host: str,
    db_port: int,
    db_name: str,
    db_user: str,
    db_pass: str | None,
    db_require_ssl: bool,
) -> sql.ConnectionConfig:
    return sql.ConnectionConfig(
        host=db_host,
        port=db_port,
        database=db_name,
        user=db_user,
        password=db_pass,
        require_ssl=db_require_ssl,
    )


@app.command()
@click.argument("scenario", **Arg.scenario)
@click.option("--risingwave-root", **Opt.risingwave_root)
@click.option("--profile", **Opt.profile)
@click.option("--rust-log", **Opt.rust_log)
@click.option("--sleep", "sleep_secs", **Opt.sleep)
@click.option("--client", **Opt.client)
@click.option("--sql-file", "sql_files", **Opt.sql_file)
@click.option("--pattern", **Opt.pattern)
@click.option("--regex", **Opt.regex)
@click.option("--log-glob", **Opt.log_glob)
@click.option("--expect", **Opt.expect)
@click.option("--max", "max_count", **Opt.max)
@click.option("--workflow-file", **Opt.workflow_file)
@click.option("--workflow", "workflow_name", **Opt.workflow_name)
@connection_options
def run(
    scenario: Scenario,
    risingwave_root: Path,
    profile: str,
    rust_log: str,
    sleep_secs: float,
    client: str,
    sql_files: list[Path],
    pattern: str,
    regex: bool,
    log_glob: str,
    expect: int | None,
    max_count: int | None,
    workflow_file: str | None,
    workflow_name: str,
    **conn: Any,
) -> None:
    """Restart the dev cluster, load SCENARIO, wait and count log events.

    Without --expect or --max the count is only reported.
    """
    if expect is not None and max_count is not None:
        raise click.UsageError("--expect and --max are mutually exclusive")

    if workflow_file is not None:
        workflows = workflow.load_workflows(Path(workflow_file))
    else:
        workflows = workflow.builtin_workflows()
    wf = workflow.find_workflow(workflow_name, workflows)

    ctx = workflow.Context(
        risedev=Risedev(risingwave_root),
        connection=connection_config(**conn),
        sql_files=sql_files or scenario.paths(),
        client=client,
        profile=profile,
        rust_log=rust_log or None,
        sleep_secs=sleep_secs,
        log_glob=log_glob,
        pattern=pattern,
        regex=regex,
        expect=expect,
        max=max_count,
    )
    info(f'Running "{wf.name}" with scenario "{scenario}" in {risingwave_root}')
    wf.run(ctx)


@app.command()
@click.option("--risingwave-root", **Opt.risingwave_root)
@click.option("--profile", **Opt.profile)
@click.option("--rust-log", **Opt.rust_log)
def restart(risingwave_root: Path, profile: str, rust_log: str) -> None:
    """Kill the dev cluster, clean its data and start it again."""
    Risedev(risingwave_root).restart(profile, rust_log=rust_log or None)


@app.command()
@click.argument("scenario", **Arg.scenario)
@click.option("--client", **Opt.client)
@click.option("--sql-file", "sql_files", **Opt.sql_file)
@click.option(
    "--wait",
    "wait_secs",
    type=click.FloatRange(min=0),
    default=0,
    help="Seconds to wait for the frontend first.",
)
@connection_options
def load(
    scenario: Scenario,
    client: str,
    sql_files: list[Path],
    wait_secs: float,
    **conn: Any,
) -> None:
    """Run the SQL of SCENARIO (or --sql-file) against a running cluster."""
    config = connection_config(**conn)
    if wait_secs > 0:
        sql.wait_for_frontend(config, wait_secs)
    for path in sql_files or scenario.paths():
        sql.run(config, path, client)


@app.command()
@click.option("--risingwave-root", **Opt.risingwave_root)
@click.option("--pattern", **Opt.pattern)
@click.option("--regex", **Opt.regex)
@click.option("--log-glob", **Opt.log_glob)
@click.option(
    "--label",
    default=logscan.DEFAULT_LABEL,
    show_default=True,
    help="Name of the counted event.",
)
@click.option(
    "--per-file", is_flag=True, default=False, help="Also report counts per file."
)
@click.option("--expect", **Opt.expect)
@click.option("--max", "max_count", **Opt.max)
def count(
    risingwave_root: Path,
    pattern: str,
    regex: bool,
    log_glob: str,
    label: str,
    per_file: bool,
    expect: int | None,
    max_count: int | None,
) -> None:
    """Count matching lines in the compute-node logs of the last run."""
    if expect is not None and max_count is not None:
        raise click.UsageError("--expect and --max are mutually exclusive")
    result = logscan.count_matches(
        Risedev(risingwave_root).log_dir, log_glob, pattern, regex
    )
    logscan.report(result, label=label, per_file=per_file)
    logscan.check(result, label, expect=expect, max=max_count)


@app.command(name="scenarios")
def list_scenarios() -> None:
    """List the scenarios shipped with risecheck."""
    for name in scenarios():
        print(name)


@app.command()
@click.argument("scenario", **Arg.scenario)
def show(scenario: Scenario) -> None:
    """Print the SQL that SCENARIO runs."""
    for path in scenario.paths():
        info(f"-- {path.parent.name}/{path.name}", fg="cyan")
        print(path.read_text().rstrip())


@app.command(name="workflows")
@click.option("--workflow-file", **Opt.workflow_file)
def list_workflows(workflow_file: str | None) -> None:
    """List known workflows and their steps."""
    if workflow_file is not None:
        workflows = workflow.load_workflows(Path(workflow_file))
    else:
        workflows = workflow.builtin_workflows()
    for wf in workflow.known_workflows(workflows):
        print(wf.overview())


# Utility methods
# ---------------


def info(msg: str, fg: str = "green") -> None:
    if not ui.Verbosity.quiet:
        click.secho(msg, fg=fg, err=True)


def main() -> None:
    with ui.error_handler("risecheck"):
        app()


if __name__ == "__main__":
    main()
