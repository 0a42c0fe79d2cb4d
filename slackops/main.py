"""
slackops — CLI entrypoint.

Usage:
    slackops --help
    slackops detect
    slackops steps upgrade
    slackops run upgrade
    slackops run sbotools --mock
    slackops audit -n 5
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from slackops import __version__
from slackops.core.config.loader import ConfigError, ConsoleSettings, load_settings
from slackops.core.observability.logging_config import setup_logging
from slackops.core.workflows import WORKFLOWS


@click.group()
@click.version_option(version=__version__, prog_name="slackops")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to settings file (default: $SLACKOPS_CONFIG or /etc/slackops/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """slackops — guarded Slackware maintenance workflows."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(debug=debug, verbose=verbose, quiet=quiet)


def _settings(ctx: click.Context) -> ConsoleSettings:
    try:
        return load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


# ── detect ──────────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def detect(ctx: click.Context, as_json: bool) -> None:
    """Show Slackware release, bootloader and privilege level."""
    from slackops.core.detection import classify_environment, detect_release, is_root

    settings = _settings(ctx)
    release, raw = detect_release(settings.system_root)
    environment = classify_environment(settings.system_root)
    root = is_root()

    if as_json:
        click.echo(json.dumps({
            "release": str(release),
            "release_raw": raw,
            "mirror_path": release.mirror_path,
            "bootloader": str(environment),
            "root": root,
            "system_root": settings.system_root,
        }, indent=2))
        return

    click.secho(f"\n🐧 {release.display_name}", fg="cyan", bold=True)
    if raw:
        click.echo(f"   {raw}")
    click.echo(f"   Bootloader: {environment.display_name}")
    if root:
        click.secho("   Privileges: root", fg="green")
    else:
        click.secho("   Privileges: not root (workflows need root)", fg="yellow")
    click.echo()


# ── steps ───────────────────────────────────────────────────────────


@cli.command()
@click.argument("workflow", type=click.Choice(sorted(WORKFLOWS)))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def steps(ctx: click.Context, workflow: str, as_json: bool) -> None:
    """List the steps of WORKFLOW and the command each one runs."""
    from slackops.core.workflows import build_definition

    definition = build_definition(workflow, _settings(ctx))

    if as_json:
        click.echo(json.dumps({
            "workflow": definition.key,
            "title": definition.title,
            "gate_index": definition.gate_index,
            "risk_index": definition.risk_index,
            "steps": [
                {"index": i, "name": s.name, "command": s.action.describe()}
                for i, s in enumerate(definition.steps)
            ],
        }, indent=2))
        return

    click.secho(f"\n📋 {definition.title}", fg="cyan", bold=True)
    for i, spec in enumerate(definition.steps):
        marker = ""
        if i == definition.risk_index:
            marker = "  (kernel check)"
        elif i == definition.gate_index:
            marker = "  (needs confirmation)"
        click.echo(f"   {i + 1}. {spec.name}{marker}")
        click.echo(f"      $ {spec.action.describe()}")
    click.echo()


# ── run ─────────────────────────────────────────────────────────────


@cli.command()
@click.argument("workflow", type=click.Choice(sorted(WORKFLOWS)))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output summary as JSON.")
@click.option("--mock", is_flag=True, help="Use the mock executor (no real execution).")
@click.pass_context
def run(ctx: click.Context, workflow: str, as_json: bool, mock: bool) -> None:
    """Run WORKFLOW, asking for confirmation at its gate.

    Examples:

        slackops run upgrade

        slackops run sbotools --mock
    """
    from slackops.adapters.mock import MockExecutor
    from slackops.core.detection import is_root
    from slackops.core.engine.guard import SessionBusyError
    from slackops.core.models.workflow import WorkflowStateError
    from slackops.core.session import ConsoleSession

    settings = _settings(ctx)
    if mock:
        # Mock runs never reach the ledger.
        settings = settings.model_copy(update={"audit_enabled": False})
    elif not is_root():
        click.secho("❌ This workflow must be run as root.", fg="red", err=True)
        sys.exit(1)

    session = ConsoleSession(settings, executor=MockExecutor() if mock else None)
    runner = session.runner(workflow)
    engine = runner.engine

    if not as_json:
        mode_label = "[mock] " if mock else ""
        click.secho(f"\n⚡ {mode_label}{engine.definition.title}", fg="cyan", bold=True)
        click.echo()
        session.output.subscribe(_OutputPrinter(
            preview_lines=settings.preview_lines,
            show_all=ctx.obj.get("verbose", False),
        ))

    try:
        asyncio.run(runner.run())
        while engine.is_gated():
            _ask_gate(runner, err=as_json)
            asyncio.run(runner.resume())
    except (SessionBusyError, WorkflowStateError) as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.secho("\n⊘ Interrupted", fg="yellow", err=True)

    summary = session.summary(workflow)
    failed = engine.is_halted() and not engine.run_outcome().gate_declined

    if as_json:
        rerun = None
        if session.must_warn_on_exit():
            rerun = _confirm_exit(session, err=True)
        data = summary.to_dict()
        data["workflow"] = workflow
        data["status"] = engine.state.tag
        data["environment"] = str(engine.environment)
        data["risk_flag"] = engine.risk_flag
        data["gate_declined"] = engine.run_outcome().gate_declined
        data["exit_warning"] = session.exit_warning_lines(cancellable=False)
        data["gate_action_rerun"] = rerun is not None and rerun.success
        click.echo(json.dumps(data, indent=2))
        if failed:
            sys.exit(1)
        return

    _print_summary(summary)

    if session.must_warn_on_exit():
        _confirm_exit(session)

    if failed:
        click.echo()
        sys.exit(1)
    click.echo()


class _OutputPrinter:
    """Echo output-log lines, capping command output per step."""

    def __init__(self, *, preview_lines: int, show_all: bool) -> None:
        self._preview_lines = preview_lines
        self._show_all = show_all
        self._shown = 0
        self._truncated = False

    def __call__(self, line) -> None:
        if line.source == "note":
            if line.text.startswith(("Running:", "Downloading:", "[mock] ")):
                self._shown = 0
                self._truncated = False
            click.secho(f"   ▸ {line.text}", fg="cyan")
            return
        if not self._show_all and self._shown >= self._preview_lines:
            if not self._truncated:
                self._truncated = True
                click.secho("     │ … (use -v to see all output)", dim=True)
            return
        self._shown += 1
        color = "yellow" if line.source == "stderr" else None
        click.secho(f"     │ {line.text}", fg=color)


def _ask_gate(runner, *, err: bool) -> None:
    """Read keys until the pending gate is resolved."""
    from slackops.core.engine.gate import GateKey, GateVerdict, gate_key_hints, gate_prompt

    engine = runner.engine
    index = engine.current_index
    spec = engine.definition.steps[index]
    keyword = engine.definition.bypass_keyword
    shown_buffer = None

    while True:
        buffer = engine.bypass_buffer
        if buffer != shown_buffer:
            click.echo(err=err)
            for line in gate_prompt(
                engine.gate_mode,
                step_name=spec.name,
                command=spec.action.describe(),
                buffer=buffer,
                keyword=keyword,
            ):
                click.secho(f"   {line}", fg="yellow", bold=line.startswith("!!"), err=err)
            hints = gate_key_hints(engine.gate_mode, keyword)
            click.secho(
                "   " + "  ·  ".join(f"{key}: {label}" for key, label in hints),
                dim=True,
                err=err,
            )
            shown_buffer = buffer

        raw = click.getchar()
        if not raw:
            # End of input
            raise click.Abort()
        verdict = runner.answer_gate(GateKey.from_terminal(raw))
        if verdict is not GateVerdict.PENDING:
            return


def _print_summary(summary) -> None:
    colors = {"OK": "green", "X": "red", "!!": "yellow", "..": "cyan", "?": "white"}
    click.echo()
    click.secho(f"   {summary.title}", fg="red" if summary.danger else "cyan", bold=True)
    click.echo()
    for row in summary.rows:
        click.secho(f"   [{row.symbol:>2}] ", fg=colors.get(row.symbol, "white"), nl=False)
        detail = f" - {row.detail}" if row.detail else ""
        click.echo(f"{row.name}{detail}")
    if summary.notes:
        click.echo()
        for note in summary.notes:
            click.echo(f"   {note}")
    if summary.banner:
        click.echo()
        for line in summary.banner:
            click.secho(f"   {line}", fg="red" if summary.danger else "yellow", bold=summary.danger)


def _confirm_exit(session, *, err: bool = False):
    """Block a silent exit while the bootloader is stale.

    Returns the result of the re-run gate action, or None on quit.
    """
    while True:
        click.echo(err=err)
        for line in session.exit_warning_lines(cancellable=False):
            click.secho(f"   {line}", fg="red", bold=line.startswith("!!"), err=err)
        raw = click.getchar()
        if not raw or raw in ("q", "Q"):
            return None
        if raw in ("l", "L"):
            result = asyncio.run(session.run_skipped_gate_action())
            if result is not None and result.success:
                click.secho("   ✓ Bootloader updated", fg="green", err=err)
            else:
                error = result.stderr.strip() if result is not None else "nothing to run"
                click.secho(f"   ✗ Bootloader update failed: {error}", fg="red", err=err)
            return result


# ── audit ───────────────────────────────────────────────────────────


@cli.command()
@click.option("-n", "count", default=10, type=int, help="Number of entries to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def audit(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show the most recent workflow runs from the audit ledger."""
    from slackops.core.persistence.audit import AuditWriter

    settings = _settings(ctx)
    writer = AuditWriter(settings.audit_file)
    entries = writer.read_recent(count)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo(f"No runs recorded in {writer.path}")
        return

    click.secho(f"\n📜 Last {len(entries)} run(s) — {writer.path}", fg="cyan", bold=True)
    for entry in entries:
        color = "green" if entry.status == "complete" and not entry.errors else "yellow"
        if entry.status == "halted" and not entry.gate_declined:
            color = "red"
        click.secho(f"   {entry.timestamp}  {entry.workflow:<10} ", nl=False)
        click.secho(entry.status, fg=color, nl=False)
        click.echo(f"  {entry.steps_completed}/{entry.steps_total} steps")
        flags = []
        if entry.risk_flag:
            flags.append("kernel updated")
        if entry.gate_declined:
            flags.append("gate declined")
        if flags:
            click.echo(f"      {', '.join(flags)}")
        for err in entry.errors:
            click.echo(f"      • {err}")
    click.echo()


if __name__ == "__main__":
    cli()
