"""
CLI interface for seedsoil.

Usage:
    seedsoil capture "text to remember"
    seedsoil pulse
    seedsoil review
    seedsoil reviewed ID [--fail]
"""

import json
import os
import sys
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .config import CONFIG_FILENAME, resolve_sync_settings
from .events import Event
from .logging_config import configure_quiet_mode, enable_debug_mode
from .pulse import PulseReport
from .session import Session
from .types import Item, MS_PER_DAY, now_ms

# Set SEEDSOIL_VERBOSE=1 to enable debug mode via environment
if os.environ.get("SEEDSOIL_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"seedsoil {version('seed-soil')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    _store_override = value


app = typer.Typer(
    name="seedsoil",
    help="Capture what you read, distill it, and keep it alive by review.",
    no_args_is_help=False,
    invoke_without_command=True,
    rich_markup_mode=None,
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="SEEDSOIL_STORE_PATH",
        help="Path to the store directory",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Capture what you read, distill it, and keep it alive by review."""
    # With no subcommand, show what is up for review
    if ctx.invoked_subcommand is None:
        with _get_session() as session:
            _echo_items(session.review_queue(), empty="Nothing to review.")


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _print_event(event: Event) -> None:
    """Show failures and notices on stderr, the way a UI shows a toast."""
    if event.level == "error" or event.kind == "notice":
        typer.echo(event.message, err=True)


def _get_session() -> Session:
    """Open the store and run session start (pull, then decay)."""
    try:
        session = Session(_store_override)
    except (ValueError, OSError) as e:
        typer.echo(f"Error: cannot open store: {e}", err=True)
        raise typer.Exit(1)
    session.subscribe(_print_event)
    session.start()
    return session


def _format_item(item: Item, now: Optional[int] = None) -> str:
    now = now_ms() if now is None else now
    age_days = max(0, (now - item.soil.last_seen) // MS_PER_DAY)
    head = f"{item.id}  {item.soil.strength:.1f}  {item.soil.status.value:<6}  {age_days}d"
    if item.seed is None:
        marker = "(pending) "
        text = item.raw.splitlines()[0] if item.raw else ""
        return f"{head}  {marker}{text[:70]}"
    lines = [f"{head}  {item.seed.essence}"]
    for nugget in item.seed.nuggets:
        lines.append(f"    - {nugget}")
    if item.seed.action:
        lines.append(f"    > {item.seed.action}")
    return "\n".join(lines)


def _echo_items(items: list[Item], *, empty: str) -> None:
    if _get_json_output():
        typer.echo(json.dumps([item.to_dict() for item in items], indent=2))
        return
    if not items:
        typer.echo(empty)
        return
    now = now_ms()
    for item in items:
        typer.echo(_format_item(item, now))


def _echo_report(report: PulseReport) -> None:
    if _get_json_output():
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return
    if report.rejected:
        typer.echo("A pulse is already running.", err=True)
        return
    if report.skipped_reason:
        typer.echo(f"Pulse skipped: {report.skipped_reason}", err=True)
        return
    typer.echo(f"Distilled {report.processed}, failed {report.failed}.")
    if report.synthesis is not None and report.synthesis.ok:
        typer.echo(f"Gaps: {len(report.synthesis.gaps)}")


def _require_item(session: Session, item_id: str) -> None:
    if session.get(item_id) is None:
        typer.echo(f"Not found: {item_id}", err=True)
        raise typer.Exit(1)


def _echo_transition(changed: bool, item_id: str, verb: str) -> None:
    if _get_json_output():
        typer.echo(json.dumps({"id": item_id, "changed": changed}))
    elif changed:
        typer.echo(f"{verb} {item_id}")
    else:
        typer.echo(f"Unchanged: {item_id}")


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def capture(
    text: Annotated[Optional[str], typer.Argument(
        help="Text to capture ('-' or omit to read stdin)",
    )] = None,
):
    """Capture a new seed."""
    if text is None or text == "-":
        text = sys.stdin.read()
    with _get_session() as session:
        item = session.capture(text)
        if item is None:
            typer.echo("Nothing to capture.", err=True)
            raise typer.Exit(1)
        if _get_json_output():
            typer.echo(json.dumps(item.to_dict(), indent=2))
        else:
            typer.echo(item.id)


@app.command()
def pulse():
    """Distill pending seeds and synthesize knowledge gaps."""
    with _get_session() as session:
        report = session.run_pulse()
        _echo_report(report)
        if not report.completed:
            raise typer.Exit(1)


@app.command()
def review(
    limit: Annotated[int, typer.Option(
        "--limit", "-n", help="Maximum number of seeds to show",
    )] = 3,
):
    """Show the strongest distilled seeds for review."""
    with _get_session() as session:
        _echo_items(session.review_queue(limit), empty="Nothing to review.")


@app.command()
def reviewed(
    item_id: Annotated[str, typer.Argument(help="Seed ID")],
    fail: Annotated[bool, typer.Option(
        "--fail", help="Could not recall it: bury the seed",
    )] = False,
):
    """Record a review: success restores full strength, --fail buries."""
    with _get_session() as session:
        _require_item(session, item_id)
        changed = session.mark_reviewed(item_id, success=not fail)
        _echo_transition(changed, item_id, "Buried" if fail else "Reviewed")


@app.command()
def archive(
    item_id: Annotated[str, typer.Argument(help="Seed ID")],
):
    """Bury a seed."""
    with _get_session() as session:
        _require_item(session, item_id)
        _echo_transition(session.archive(item_id), item_id, "Buried")


@app.command()
def resurrect(
    item_id: Annotated[str, typer.Argument(help="Seed ID")],
):
    """Bring a buried seed back at half strength."""
    with _get_session() as session:
        _require_item(session, item_id)
        _echo_transition(session.resurrect(item_id), item_id, "Resurrected")


@app.command("list")
def list_items():
    """List every seed, newest first."""
    with _get_session() as session:
        _echo_items(session.items(), empty="No seeds yet.")


@app.command()
def buried():
    """List buried seeds."""
    with _get_session() as session:
        _echo_items(session.buried(), empty="Nothing buried.")


@app.command()
def gaps():
    """Show the knowledge gaps from the last synthesis."""
    with _get_session() as session:
        result = session.gaps()
    if _get_json_output():
        typer.echo(json.dumps(result, indent=2))
    elif not result:
        typer.echo("No gaps yet.")
    else:
        for gap in result:
            typer.echo(f"- {gap}")


@app.command()
def intake(
    path: Annotated[Path, typer.Argument(help="Text, Markdown or PDF file")],
):
    """Capture the text of a file, then run a pulse."""
    with _get_session() as session:
        try:
            result = session.intake(path)
        except (IOError, ValueError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)
        if result.item is None:
            typer.echo("No text found.", err=True)
            raise typer.Exit(1)
        if not _get_json_output():
            typer.echo(result.item.id)
        _echo_report(result.report)


@app.command()
def export(
    output: Annotated[Optional[Path], typer.Option(
        "--output", "-o", help="Write to a file instead of stdout",
    )] = None,
):
    """Export all seeds and gaps as JSON."""
    with _get_session() as session:
        data = session.export_data()
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if output is None:
        typer.echo(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    typer.echo(f"Exported {len(data['items'])} seeds to {output}", err=True)


@app.command()
def clear(
    yes: Annotated[bool, typer.Option(
        "--yes", "-y", help="Do not ask for confirmation",
    )] = False,
):
    """Delete every seed and gap."""
    if not yes:
        typer.confirm("Delete all seeds?", abort=True)
    with _get_session() as session:
        removed = session.clear_all()
    typer.echo(f"Removed {removed} seeds.")


@app.command()
def config():
    """Show the store location and configuration."""
    with _get_session() as session:
        cfg = session.config
        sync = resolve_sync_settings(cfg)
        info = {
            "store": str(session.store_path),
            "config": str(session.store_path / CONFIG_FILENAME),
            "distill": {"name": cfg.distill.name, **cfg.distill.params},
            "sync": None if sync is None else {
                "gist_id": sync.gist_id,
                "filename": sync.filename,
                "background": sync.background,
                "enabled": session.sync_enabled,
            },
            "items": len(session.items()),
        }
    if _get_json_output():
        typer.echo(json.dumps(info, indent=2))
        return
    typer.echo(f"store: {info['store']}")
    typer.echo(f"config: {info['config']}")
    distill = info["distill"]
    model = f" ({distill['model']})" if "model" in distill else ""
    typer.echo(f"distill: {distill['name']}{model}")
    if sync is None:
        typer.echo("sync: off")
    else:
        state = "on" if session.sync_enabled else "off (no token)"
        typer.echo(f"sync: gist {sync.gist_id} [{state}]")
    typer.echo(f"items: {info['items']}")


def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="seedsoil CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
