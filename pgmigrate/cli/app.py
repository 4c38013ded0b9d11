"""
pgmigrate CLI Application - Built with Click.

Commands:
    pgmigrate migrate APP                       Migrate APP to a new Postgres database
    pgmigrate plan APP                          Show the steps a migration would run
    pgmigrate transfer APP [FROM_VAR] TO_VAR    Copy one database into another
"""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from pgmigrate import __version__
from pgmigrate.cli.render import (
    RichProgressListener,
    render_compensation,
    render_metrics,
    render_plan,
    render_result,
)
from pgmigrate.clients.base import ControlPlane, close_client
from pgmigrate.core.config import MigrationConfig, configure
from pgmigrate.core.exceptions import ControlPlaneError
from pgmigrate.core.executor import SagaExecutor
from pgmigrate.core.listeners import (
    LoggingMigrationListener,
    MetricsMigrationListener,
    MigrationListener,
)
from pgmigrate.core.logger import NullLogger, configure_default_logging, set_logger
from pgmigrate.core.step import Step
from pgmigrate.core.types import MigrationResult
from pgmigrate.monitoring.logging import ContextMigrationListener, json_handler
from pgmigrate.monitoring.metrics import MigrationMetrics
from pgmigrate.plan import build_migration_plan, default_transfer_factory
from pgmigrate.steps import EnsureBackupService, TransferData

console = Console()


# ============================================================================
# CLI Group
# ============================================================================


class OrderedGroup(click.Group):
    """Click Group that lists commands in the order they were added."""

    def list_commands(self, ctx):
        return list(self.commands.keys())


def default_api_factory(config: MigrationConfig) -> ControlPlane:
    from pgmigrate.clients.heroku import HerokuClient

    return HerokuClient(config.api_key, base_url=config.api_url, timeout=config.http_timeout)


@click.group(cls=OrderedGroup)
@click.version_option(version=__version__, prog_name="pgmigrate")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file (default: environment variables)",
)
@click.option("--api-key", envvar="HEROKU_API_KEY", help="Platform API key")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines on stderr")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.option("--quiet", "-q", is_flag=True, help="Do not log step-by-step progress")
@click.option("--metrics", "show_metrics", is_flag=True, help="Print step metrics after the run")
@click.pass_context
def cli(ctx, config_file, api_key, json_logs, verbose, quiet, show_metrics):
    """
    pgmigrate - Move an application to a new Postgres database.

    \b
    Every change made along the way is undone if the migration cannot
    finish: maintenance mode is switched off, processes are scaled back
    and configuration is restored.
    """
    ctx.ensure_object(dict)

    try:
        config = MigrationConfig.from_file(config_file) if config_file else MigrationConfig.from_env()
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e
    config = config.with_overrides(api_key=api_key)
    if verbose:
        config = config.with_overrides(log_level="DEBUG")
    configure(config)

    if json_logs:
        configure_default_logging(config.log_level, handler=json_handler())
    else:
        configure_default_logging(config.log_level)
    if quiet:
        set_logger(NullLogger())

    ctx.obj["config"] = config
    ctx.obj["metrics"] = MigrationMetrics() if show_metrics else None
    ctx.obj.setdefault("api_factory", default_api_factory)
    ctx.obj.setdefault("transfer_factory", default_transfer_factory(config))


# ============================================================================
# pgmigrate migrate
# ============================================================================


@cli.command("migrate")
@click.argument("app")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def migrate_cmd(ctx, app, yes):
    """
    Migrate APP from its shared database to a new Postgres database.

    \b
    The application is put in maintenance mode and scaled to zero while
    the data is copied; both are restored when the command finishes.
    """
    config: MigrationConfig = ctx.obj["config"]
    _require_api_key(config)

    if not yes:
        click.confirm(
            f"This will put {app} in maintenance mode and migrate its database. Continue?",
            abort=True,
        )

    api = ctx.obj["api_factory"](config)
    try:
        progress = RichProgressListener(console)
        steps = build_migration_plan(
            api,
            app,
            config,
            transfer_factory=ctx.obj["transfer_factory"],
            on_progress=progress.on_transfer_progress,
        )
        _engage(ctx, app, steps, progress)
    finally:
        close_client(api)


# ============================================================================
# pgmigrate plan
# ============================================================================


@cli.command("plan")
@click.argument("app")
@click.pass_context
def plan_cmd(ctx, app):
    """Show the steps a migration of APP would run, without running them."""
    config: MigrationConfig = ctx.obj["config"]
    api = ctx.obj["api_factory"](config)
    try:
        steps = build_migration_plan(api, app, config, transfer_factory=ctx.obj["transfer_factory"])
        render_plan(console, steps)
    finally:
        close_client(api)


# ============================================================================
# pgmigrate transfer
# ============================================================================


@cli.command("transfer")
@click.argument("app")
@click.argument("databases", nargs=-1, required=True)
@click.pass_context
def transfer_cmd(ctx, app, databases):
    """
    Copy one of APP's databases into another: transfer APP [FROM_VAR] TO_VAR.

    \b
    With a single variable the database bound to DATABASE_URL is copied
    into TO_VAR. The copy goes directly from one database to the other
    without an intermediate dump.
    """
    if len(databases) > 2:
        raise click.UsageError("Expected at most two config vars: [FROM_VAR] TO_VAR")
    from_var = databases[0] if len(databases) == 2 else "DATABASE_URL"
    to_var = databases[-1]

    config: MigrationConfig = ctx.obj["config"]
    _require_api_key(config)

    api = ctx.obj["api_factory"](config)
    try:
        try:
            config_vars = api.get_config_vars(app)
        except ControlPlaneError as e:
            raise click.ClickException(str(e)) from e
        for var in (from_var, to_var):
            if not config_vars.get(var):
                raise click.UsageError(f"{var} is not set on {app}")

        progress = RichProgressListener(console)
        steps: list[Step] = [
            EnsureBackupService(api, app, addon=config.backup_addon, url_var=config.transfer_url_var),
            TransferData(
                ctx.obj["transfer_factory"],
                poll_interval=config.poll_interval,
                timeout=config.transfer_timeout,
                source=(from_var, config_vars[from_var]),
                target=(to_var, config_vars[to_var]),
                on_progress=progress.on_transfer_progress,
            ),
        ]
        _engage(ctx, app, steps, progress)
    finally:
        close_client(api)


# ============================================================================
# Helpers
# ============================================================================


def _require_api_key(config: MigrationConfig) -> None:
    if not config.api_key:
        raise click.UsageError("No API key: pass --api-key or set HEROKU_API_KEY")


def _engage(ctx: click.Context, app: str, steps: list[Step], progress: MigrationListener) -> None:
    """Run the steps, render the outcome and exit non-zero on failure."""
    metrics: MigrationMetrics | None = ctx.obj.get("metrics")
    listeners = [ContextMigrationListener(app), LoggingMigrationListener(), progress]
    if metrics is not None:
        listeners.append(MetricsMigrationListener(metrics))

    executor = SagaExecutor(listeners=listeners)
    failed = False
    try:
        result = executor.engage(steps)
    except (Exception, KeyboardInterrupt) as e:
        _report_failure(executor.last_result, e)
        failed = True
    else:
        render_result(console, result)

    if metrics is not None:
        render_metrics(console, metrics.get_metrics())
    if failed:
        ctx.exit(1)


def _report_failure(result: MigrationResult | None, error: BaseException) -> None:
    message = str(error) or type(error).__name__
    console.print(f"[bold red]Migration failed:[/bold red] {message}")
    if result is not None:
        render_compensation(console, result.compensation)
