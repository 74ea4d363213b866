"""
cli.py - Luminous Ecosystem Command Line

Usage:
    luminous run --steps 200 --seed 7 --show
    luminous serve --duration 60 --config ecosystem.yaml
    luminous show
    luminous codex --limit 10
    luminous act stabilize
    luminous say "summon a void dancer"
    luminous register nexus.json
    luminous reset --yes
    luminous validate-config ecosystem.yaml --fix

Every command accepts --output json for machine-readable output.
"""

from __future__ import annotations

import json
import logging
import sys
import time
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from tqdm import tqdm
import yaml

import config_schema
from config_schema import EcosystemConfig
from ecosystem import actions
from ecosystem.codex import query_recent
from ecosystem.constants import PARAM_NAMES
from ecosystem.cycle import initialize_state, run_steps
from ecosystem.errors import ConfigError, EcosystemError, RegistrationError
from ecosystem.registry import EntityRegistry, registration_from_reply
from ecosystem.render import render_grid
from ecosystem.rng import NumpyRandom
from ecosystem.types_config import PRESETS, get_preset
from ecosystem.types_state import EcosystemState
from messages import process_user_message
from receipts import ReceiptJournal, merkle
from runner import AutonomousRunner, RunnerStatus
from storage import StorageAdapter, open_storage

console = Console()
err_console = Console(stderr=True)


# =============================================================================
# Output helpers
# =============================================================================

def print_success(message: str) -> None:
    """Print a success message with green checkmark."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message with red X."""
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message with yellow warning sign."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_next(command: str) -> None:
    """Print suggested next command."""
    console.print(f"\n[dim]Next:[/dim] [cyan]{command}[/cyan]")


def _fail(output: str, message: str, code: int = 1, **extra: Any) -> None:
    if output == "json":
        click.echo(json.dumps({"error": message, **extra}))
    else:
        print_error(escape(message))
    sys.exit(code)


def _summary(state: EcosystemState) -> Dict[str, Any]:
    return {
        "cycle": state.cycle,
        "environment": state.environment.value,
        "params": state.params.to_dict(),
        "counts": {k: v for k, v in sorted(state.counts.items())},
        "entities": len(state.entities),
        "guardian": {"active": state.guardian.active, "mood": state.guardian.mood,
                     "focus": state.guardian.focus},
    }


def _make_bar(value: int, width: int = 20) -> str:
    filled = int(value / 100 * width)
    return "█" * filled + "░" * (width - filled)


def _print_state_table(state: EcosystemState, title: str) -> None:
    table = Table(title=title)
    table.add_column("Parameter")
    table.add_column("Value", justify="right")
    table.add_column("")
    for name in PARAM_NAMES:
        value = getattr(state.params, name)
        table.add_row(name, str(value), _make_bar(value))
    console.print(table)

    counts = Table(title="Population")
    counts.add_column("Type")
    counts.add_column("Count", justify="right")
    for entity_type, count in sorted(state.counts.items()):
        counts.add_row(escape(entity_type), str(count))
    console.print(counts)

    guardian = state.guardian
    console.print(
        f"cycle {state.cycle}  environment [cyan]{state.environment.value}[/cyan]  "
        f"guardian {'active' if guardian.active else 'dormant'} "
        f"({guardian.mood}, {escape(guardian.focus)})"
    )


# =============================================================================
# Storage helpers
# =============================================================================

def _storage(backend: str, store: str, fallback_dir: str) -> StorageAdapter:
    config = EcosystemConfig(storage_backend=backend, storage_path=store, fallback_path=fallback_dir)
    return open_storage(config)


def _registry(storage: StorageAdapter) -> EntityRegistry:
    return EntityRegistry.from_dict(storage.load_entity_types())


def _saved_state(storage: StorageAdapter, output: str) -> EcosystemState:
    state = storage.load_state()
    if state is None:
        _fail(output, "No saved ecosystem found", hint="luminous run --steps 10")
    return state


def storage_options(fn):
    """Shared --backend/--store/--fallback-dir options."""
    fn = click.option("--fallback-dir", default=".luminous", show_default=True,
                      help="Directory of the JSON fallback store")(fn)
    fn = click.option("--store", default="luminous-ecosystem.db", show_default=True,
                      help="SQLite database path")(fn)
    fn = click.option("--backend", type=click.Choice(["sqlite", "json"]), default="sqlite",
                      show_default=True)(fn)
    return fn


output_option = click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")


# =============================================================================
# Click group
# =============================================================================

@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log lifecycle events")
def cli(verbose: bool) -> None:
    """Luminous Ecosystem: an autonomous ASCII life simulation."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# --- run ---

@cli.command("run")
@click.option("--steps", "-n", type=click.IntRange(min=0), default=100, show_default=True)
@click.option("--seed", type=int, default=None, help="RNG seed")
@click.option("--preset", type=click.Choice(sorted(PRESETS)), default="default", show_default=True)
@click.option("--fresh", is_flag=True, help="Ignore the saved ecosystem and start from the preset")
@click.option("--show", is_flag=True, help="Render the grid afterwards")
@storage_options
@output_option
def run_cmd(steps: int, seed: Optional[int], preset: str, fresh: bool, show: bool,
            backend: str, store: str, fallback_dir: str, output: str) -> None:
    """Advance the ecosystem STEPS ticks and save it."""
    storage = _storage(backend, store, fallback_dir)
    try:
        registry = _registry(storage)
        rng = NumpyRandom(seed)

        state = None if fresh else storage.load_state()
        if state is None:
            state = initialize_state(get_preset(preset), rng, registry)

        progress = tqdm(total=steps, desc="Stepping ecosystem", disable=output == "json", file=sys.stderr)
        run_steps(state, steps, rng, registry, on_step=lambda _: progress.update(1))
        progress.close()

        storage.save_state(state)
    finally:
        storage.close()

    if output == "json":
        result = _summary(state)
        if show:
            result["grid"] = render_grid(state, registry)
        click.echo(json.dumps(result, indent=2))
        return

    _print_state_table(state, f"Ecosystem after {steps} steps")
    if show:
        click.echo(render_grid(state, registry))
    print_success(f"Saved cycle {state.cycle}")
    print_next("luminous codex --limit 10")


# --- serve ---

@cli.command("serve")
@click.option("--duration", type=float, default=0.0, show_default=True,
              help="Seconds to run; 0 runs until interrupted")
@click.option("--config", "config_path", type=click.Path(exists=True), default=None)
@output_option
def serve_cmd(duration: float, config_path: Optional[str], output: str) -> None:
    """Run the autonomous runner in the foreground."""
    try:
        config = config_schema.load(config_path) if config_path else EcosystemConfig()
    except (ConfigError, ValueError, yaml.YAMLError) as exc:
        _fail(output, f"Invalid config: {exc}", code=2, path=config_path)

    journal = ReceiptJournal(path=config.journal_path)
    storage = open_storage(config, journal)
    registry = _registry(storage)
    runner = AutonomousRunner(storage, config, registry=registry, journal=journal)

    def report(state: EcosystemState) -> None:
        if output == "json":
            click.echo(json.dumps(_summary(state)))
        else:
            console.print(
                f"[dim]{time.strftime('%H:%M:%S')}[/dim] cycle {state.cycle:>6}  "
                f"{state.environment.value:<9}  entities {len(state.entities):>3}  "
                f"R{state.params.resonance} C{state.params.complexity} "
                f"H{state.params.harmony} E{state.params.entropy}"
            )

    runner.subscribe(report)
    runner.start()
    if output != "json":
        if runner.status == RunnerStatus.FALLBACK:
            print_warning("Runner in fallback mode: state is published but not advanced")
        else:
            print_success(f"Runner {runner.status.value}")

    started = time.monotonic()
    try:
        while duration <= 0 or time.monotonic() - started < duration:
            time.sleep(0.1)
    except KeyboardInterrupt:
        pass
    finally:
        runner.close()
        storage.close()

    if output != "json":
        print_success(f"Stopped; {len(journal)} receipts, root {journal.root()[:16]}")


# --- show ---

@cli.command("show")
@storage_options
@output_option
def show_cmd(backend: str, store: str, fallback_dir: str, output: str) -> None:
    """Render the saved ecosystem as an ASCII grid."""
    storage = _storage(backend, store, fallback_dir)
    try:
        state = _saved_state(storage, output)
        grid = render_grid(state, _registry(storage))
    finally:
        storage.close()

    if output == "json":
        click.echo(json.dumps({"cycle": state.cycle, "environment": state.environment.value, "grid": grid}))
    else:
        click.echo(grid)
        console.print(f"cycle {state.cycle}  environment [cyan]{state.environment.value}[/cyan]")


# --- codex ---

@cli.command("codex")
@click.option("--limit", "-k", type=click.IntRange(min=1), default=20, show_default=True)
@storage_options
@output_option
def codex_cmd(limit: int, backend: str, store: str, fallback_dir: str, output: str) -> None:
    """Print recent codex entries, newest first, near-duplicates removed."""
    storage = _storage(backend, store, fallback_dir)
    try:
        state = _saved_state(storage, output)
    finally:
        storage.close()

    entries = query_recent(state.codex_entries, limit)
    if output == "json":
        click.echo(json.dumps({
            "entries": [e.to_dict() for e in entries],
            "codex_root": merkle([e.to_dict() for e in state.codex_entries]),
        }, indent=2))
        return

    table = Table(title="Codex")
    table.add_column("Cycle", justify="right")
    table.add_column("Entry")
    for entry in entries:
        table.add_row(str(entry.cycle), escape(entry.text))
    console.print(table)


# --- act ---

@cli.command("act")
@click.argument("action", type=click.Choice(["observe", "stabilize", "amplify", "focus"]))
@click.option("--seed", type=int, default=None)
@storage_options
@output_option
def act_cmd(action: str, seed: Optional[int], backend: str, store: str, fallback_dir: str, output: str) -> None:
    """Intervene in the saved ecosystem."""
    storage = _storage(backend, store, fallback_dir)
    try:
        state = _saved_state(storage, output)
        registry = _registry(storage)
        if action == "observe":
            actions.observe(state)
        elif action == "stabilize":
            actions.stabilize_resonance(state)
        elif action == "amplify":
            actions.amplify_shift(state)
        else:
            actions.focus_entity(state, NumpyRandom(seed), registry)
        storage.save_state(state)
    finally:
        storage.close()

    latest = state.codex_entries[-1].text if state.codex_entries else ""
    if output == "json":
        click.echo(json.dumps({"action": action, "codex": latest, "params": state.params.to_dict()}))
    else:
        console.print(f"[italic]{escape(latest)}[/italic]")


# --- say ---

@cli.command("say")
@click.argument("message")
@click.option("--seed", type=int, default=None)
@storage_options
@output_option
def say_cmd(message: str, seed: Optional[int], backend: str, store: str, fallback_dir: str, output: str) -> None:
    """Send an observer message to the saved ecosystem."""
    storage = _storage(backend, store, fallback_dir)
    try:
        state = _saved_state(storage, output)
        outcome = process_user_message(state, message, NumpyRandom(seed), _registry(storage))
        storage.save_state(state)
    finally:
        storage.close()

    result = {
        "request": (
            {"action": outcome.request.action, "entity_type": outcome.request.entity_type}
            if outcome.request else None
        ),
        "influenced": outcome.influenced,
        "environment": outcome.environment.value if outcome.environment else None,
        "manifested": outcome.manifested,
    }
    if output == "json":
        click.echo(json.dumps(result))
    elif outcome.request:
        print_success(f"{outcome.request.action} {escape(outcome.request.entity_type)}")
    elif outcome.influenced:
        print_success("The ecosystem stirs in response")
    else:
        console.print("[dim]The ecosystem does not react[/dim]")


# --- register ---

@cli.command("register")
@click.argument("definition", type=click.Path(exists=True, dir_okay=False))
@storage_options
@output_option
def register_cmd(definition: str, backend: str, store: str, fallback_dir: str, output: str) -> None:
    """Register a custom entity type from a JSON definition or an assistant reply."""
    text = Path(definition).read_text(encoding="utf-8")
    storage = _storage(backend, store, fallback_dir)
    try:
        registry = _registry(storage)
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = None
        try:
            if isinstance(data, dict) and data.get("entityType"):
                spec = registry.register_definition(data)
            else:
                spec = registration_from_reply(registry, text)
        except RegistrationError as exc:
            _fail(output, str(exc), code=2)
        storage.save_entity_types(registry.to_dict())
    finally:
        storage.close()

    if output == "json":
        click.echo(json.dumps({"name": spec.name, **spec.to_dict()}, indent=2))
        return
    panel = Panel(
        escape("\n".join(spec.variant(0))),
        title=f"[bold]{escape(spec.display_name)}[/bold] ({escape(spec.name)})",
        border_style="green",
    )
    console.print(panel)
    print_success(f"Registered {escape(spec.name)}")
    print_next(f"luminous say \"summon a {spec.name}\"")


# --- reset ---

@cli.command("reset")
@click.confirmation_option(prompt="Clear the saved ecosystem state?")
@storage_options
@output_option
def reset_cmd(backend: str, store: str, fallback_dir: str, output: str) -> None:
    """Clear the saved ecosystem state."""
    storage = _storage(backend, store, fallback_dir)
    try:
        storage.clear_saved_state()
    finally:
        storage.close()

    if output == "json":
        click.echo(json.dumps({"cleared": True}))
    else:
        print_success("Saved ecosystem cleared")


# --- validate-config ---

@cli.command("validate-config")
@click.argument("config_path", type=click.Path(exists=True))
@click.option("--fix", is_flag=True, help="Auto-repair and save")
@output_option
def validate_config_cmd(config_path: str, fix: bool, output: str) -> None:
    """Validate a runner config file."""
    try:
        config = config_schema.load(config_path, strict=True)
        errors = []
    except ConfigError as exc:
        config = None
        errors = [line.strip()[2:] for line in str(exc).splitlines()[1:]]
    except (ValueError, yaml.YAMLError, EcosystemError) as exc:
        _fail(output, f"Unreadable config: {exc}", code=2, path=config_path)

    repairs = []
    if errors and fix:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                config = config_schema.load(config_path, strict=False)
            except ConfigError as exc:
                _fail(output, str(exc), code=2, path=config_path)
        repairs = [str(w.message) for w in caught]
        config.save(config_path)

    is_valid = not errors or fix
    if output == "json":
        click.echo(json.dumps({
            "path": config_path,
            "valid": is_valid,
            "errors": errors,
            "repairs": repairs,
            "config": config.to_dict() if config else None,
        }, indent=2))
        if not is_valid:
            sys.exit(1)
        return

    status = "PASSED" if not errors else ("REPAIRED" if fix else "FAILED")
    style = "green" if not errors else ("yellow" if fix else "red")
    if config is not None:
        body = escape(config.explain())
        if repairs:
            body += "\n\n" + "\n".join(f"[yellow]⚠[/yellow] {escape(r)}" for r in repairs)
    else:
        body = "\n".join(f"[red]✗[/red] {escape(e)}" for e in errors)
    console.print(Panel(body, title=f"[bold {style}]Config Validation: {status}[/bold {style}]",
                        border_style=style))
    if not is_valid:
        print_next(f"luminous validate-config {config_path} --fix")
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
