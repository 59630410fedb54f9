#!/usr/bin/env python3
"""
Console UI Module using Rich

Styled messages, progress displays, the project listing and line-based
prompts for Skoria.
"""

from typing import IO, Any, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.prompt import Prompt
from rich.table import Table

from auxiliary import format_path_for_display


class ConsoleUI:
    """Console UI handler using Rich"""

    def __init__(
        self, force_terminal: Optional[bool] = None, stderr: bool = False, file: Optional[IO[str]] = None
    ):
        """Initialize console

        Args:
            force_terminal: Force (or disable) terminal control codes
            stderr: Write to stderr, keeping stdout free for machine output
            file: Write to this stream instead (tests)
        """
        self.console = Console(force_terminal=force_terminal, stderr=stderr, file=file, highlight=False)

    # Basic styled output methods
    def print_success(self, message: str):
        """Print success message in green"""
        self.console.print(message, style="green")

    def print_error(self, message: str):
        """Print error message in red"""
        self.console.print(message, style="red bold")

    def print_warning(self, message: str):
        """Print warning message in yellow"""
        self.console.print(message, style="yellow")

    def print_info(self, message: str):
        """Print info message in cyan"""
        self.console.print(message, style="cyan")

    def print_progress(self, message: str):
        """Print progress message in dim white"""
        self.console.print(message, style="white dim")

    def print_plain(self, message: str):
        """Print message in plain white"""
        self.console.print(message, style="white")

    def print_header(self, title: str, subtitle: Optional[str] = None):
        """Print a header with optional subtitle"""
        if subtitle:
            header_text = f"[bold]{title}[/bold]\n[dim]{escape(subtitle)}[/dim]"
        else:
            header_text = f"[bold]{title}[/bold]"

        panel = Panel(header_text, box=box.ROUNDED, padding=(0, 1))
        self.console.print(panel)

    def print_separator(self, char: str = "─", length: int = 60):
        """Print a separator line"""
        self.console.print(char * length, style="dim")

    # Configuration display
    def show_configuration(self, config: dict[str, Any]):
        """Display configuration in a formatted table"""
        table = Table(show_header=False, box=box.SIMPLE)
        table.add_column("Setting", style="cyan dim", min_width=14, justify="right")
        table.add_column("Value", style="cyan", min_width=30)

        for key, value in config.items():
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            table.add_row(key, escape(str(value)))

        self.console.print(table)

    # Project listing
    def show_projects(self, projects: list, title: str = "Projects"):
        """Show discovered projects as a numbered table

        Args:
            projects: Discovered projects (path and artifact_size attributes)
            title: Table title
        """
        table = Table(title=title, box=box.ROUNDED, show_lines=False)
        table.add_column("#", justify="right", style="dim", min_width=3)
        table.add_column("Project", style="white", min_width=30)
        table.add_column("Target", justify="right", style="yellow", min_width=8)

        for index, project in enumerate(projects, 1):
            table.add_row(str(index), escape(format_path_for_display(str(project.path))), project.artifact_size)

        self.console.print(table)

    def show_cleanup_summary(self, outcomes: list, command: str = "cargo clean"):
        """Show succeeded and failed cleanup outcomes"""
        succeeded = [o for o in outcomes if o.success]
        failed = [o for o in outcomes if not o.success]

        if succeeded:
            self.print_success(f"'{command}' succeeded for {len(succeeded)} projects")

        if failed:
            self.print_error(f"'{command}' failed for {len(failed)} projects:")
            for outcome in failed:
                path = escape(format_path_for_display(str(outcome.path)))
                self.console.print(f"[red dim]  • {path}: {escape(outcome.error_message or '')}[/red dim]")

    # Progress displays
    def create_progress(self):
        """Create a Rich progress context manager for batch operations"""
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("({task.completed}/{task.total})"),
            TimeElapsedColumn(),
            console=self.console,
        )

    def create_activity_progress(self):
        """Create a Rich progress context manager for activity-only display (no counts)"""
        return Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
        )

    # Interactive prompts
    def prompt(self, question: str, default: Optional[str] = None) -> str:
        """Ask for one line of text input"""
        return Prompt.ask(question, default=default, console=self.console)
