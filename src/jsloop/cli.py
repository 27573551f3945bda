"""Command-line front-end: print or interactively replay a trace."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from . import __version__
from .errors import JSSyntaxError
from .parser import parse
from .session import Session, SessionState, Status
from .trace import ExecutionStep, ExecutionTrace

console = Console()


def _read(file: str) -> str:
    return Path(file).read_text(encoding="utf-8")


def _names(items) -> str:
    return escape(", ".join(str(item) for item in items)) or "-"


def _trace_table(trace: ExecutionTrace) -> Table:
    table = Table(title="Execution trace")
    table.add_column("#", style="yellow", justify="right")
    table.add_column("Step", style="bold")
    table.add_column("Call stack", style="cyan")
    table.add_column("Microtasks", style="magenta")
    table.add_column("Tasks", style="green")
    for step in trace:
        table.add_row(
            str(step.index),
            escape(step.label),
            _names(step.call_stack),
            _names(step.microtask_queue),
            _names(step.task_queue),
        )
    return table


def _step_panel(step: ExecutionStep, total: int) -> Panel:
    body = Table.grid(padding=(0, 2))
    body.add_column(style="bold")
    body.add_column()
    body.add_row("Call stack", _names(reversed(step.call_stack)))
    body.add_row("Microtasks", _names(step.microtask_queue))
    body.add_row("Tasks", _names(step.task_queue))
    body.add_row("Clock", f"{step.time}ms ({step.phase.value})")
    if step.line:
        body.add_row("Line", str(step.line))
    if step.output:
        body.add_row("Output", escape(step.output[-1]))
    return Panel(
        body,
        title=f"[bold blue]Step {step.index + 1}/{total}[/bold blue]: {escape(step.label)}",
        border_style="blue",
    )


def _report(state: SessionState) -> None:
    if state.diagnostics:
        console.print("[bold yellow]Diagnostics:[/bold yellow]")
        for diagnostic in state.diagnostics:
            console.print(f"  {escape(str(diagnostic))}")
    if state.error:
        console.print(f"[bold red]Error:[/bold red] {escape(state.error)}")


@click.group()
@click.version_option(version=__version__, prog_name="jsloop")
@click.option("-v", "--verbose", is_flag=True, help="Log scheduling decisions")
def cli(verbose):
    """Visualise how the JavaScript event loop runs a program."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--max-steps", type=int, default=10000, show_default=True,
              help="Abort runs that record more steps than this")
def trace(file, max_steps):
    """Run a program and print its full trace"""
    session = Session(_read(file), max_steps=max_steps)
    state = session.run()
    if state.trace:
        console.print(_trace_table(session.trace))
        final = state.trace[-1]
        if final.output:
            console.print(Panel(escape("\n".join(final.output)), title="Console", border_style="green"))
    _report(state)
    if state.status is Status.ERROR:
        sys.exit(1)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def play(file):
    """Step through a program's trace interactively"""
    source = _read(file)
    console.print(Syntax(source, "javascript", line_numbers=True))
    session = Session(source)
    state = session.run()
    _report(state)
    if not state.trace:
        sys.exit(1)

    while True:
        step = session.current
        console.print(_step_panel(step, len(session.trace)))
        if not session.running:
            console.print(f"[dim]{session.status.value}[/dim]")
        command = click.prompt(
            "[enter] step  [p]ause  [c]ontinue  [r]eset  [q]uit",
            default="", show_default=False,
        ).strip().lower()
        if command == "q":
            break
        if command == "p":
            session.pause()
        elif command == "c":
            session.resume()
        elif command == "r":
            session.reset()
            session.run()
        elif session.status is Status.PAUSED:
            console.print("[yellow]Paused: press c to continue[/yellow]")
        else:
            before = session.index
            session.step()
            if session.index == before:
                console.print("[bold green]End of trace[/bold green]")
                break


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def check(file):
    """Check syntax of a JavaScript file"""
    try:
        parse(_read(file))
    except JSSyntaxError as e:
        console.print(f"[bold red]Syntax error:[/bold red] {escape(str(e))}")
        sys.exit(1)
    console.print("[bold green]Syntax is valid![/bold green]")


def main():
    cli()


if __name__ == "__main__":
    main()
