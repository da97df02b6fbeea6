#!/usr/bin/env python3
"""
Console interface for importing a contact CSV file.
Previews the file, asks for confirmation, shows import progress and prints the result report.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.prompt import Confirm
from rich.table import Table

from .core.config import settings
from .core.logging_config import configure_logging
from .domain.imports.errors import CsvImportError, MissingColumnsError
from .domain.imports.models import ImportOutcome, ImportPhase, PreviewView, SelectedFile
from .domain.imports.progress import ProgressEstimator
from .domain.imports.session import ImportSessionController
from .domain.imports.variants import get_variant, list_variants
from .integrations.auth import StaticTokenProvider
from .integrations.import_rpc import ImportRpcClient


class ImportConsole:
    """Terminal front end for a single import session."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.error_limit = settings.result_error_display_limit

    def print_error(self, error: Exception) -> None:
        message = error.message if isinstance(error, CsvImportError) else str(error)
        if isinstance(error, MissingColumnsError):
            message += "\n\n[dim]Add these columns to the header row and choose the file again.[/dim]"
        self.console.print(Panel(f"[red]{message}[/red]", title="Error", border_style="red"))

    def print_preview(self, file: SelectedFile, preview: PreviewView) -> None:
        """Render the sample rows of the selected file."""
        table = Table(title=f"{file.file_name}: {preview.total_row_count:,} contacts")
        table.add_column("#", style="dim", justify="right")
        for header in preview.headers:
            table.add_column(header, style="white")

        for idx, row in enumerate(preview.sample_rows, 1):
            table.add_row(str(idx), *[cell or "[dim]-[/dim]" for cell in row])

        self.console.print(table)
        if preview.is_truncated:
            self.console.print(
                f"[dim]Showing the first {len(preview.sample_rows)} of {preview.total_row_count:,} rows[/dim]"
            )

    def print_outcome(self, outcome: ImportOutcome) -> None:
        """Render counts and the first row errors of a finished import."""
        if outcome.is_complete_success:
            title, style = "Import complete", "green"
        else:
            title, style = "Import complete (with errors)", "yellow"

        summary = (
            f"[green]Imported: {outcome.imported_count:,}[/green]\n"
            f"[{'red' if outcome.failed_count else 'white'}]Failed: {outcome.failed_count:,}[/]"
        )
        self.console.print(Panel(summary, title=title, border_style=style))

        if outcome.errors:
            errors_table = Table(title="Error details")
            errors_table.add_column("Line", style="red", justify="right")
            errors_table.add_column("Message", style="white")
            for error in outcome.visible_errors(self.error_limit):
                line = str(error.line_number) if error.line_number is not None else "-"
                errors_table.add_row(line, error.message)
            self.console.print(errors_table)

            hidden = outcome.hidden_error_count(self.error_limit)
            if hidden:
                self.console.print(f"[dim]...and {hidden} more errors[/dim]")

    async def run(
        self,
        path: Path,
        variant_name: str,
        customer_id: Optional[str] = None,
        token: Optional[str] = None,
        assume_yes: bool = False,
    ) -> int:
        """Run one import end to end and return the process exit status."""
        variant = get_variant(variant_name)

        progress_bar = Progress(
            TextColumn("[bold blue]Importing"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            console=self.console,
            transient=True,
        )
        bar = progress_bar.add_task("import", total=100)

        def on_progress(value: int) -> None:
            progress_bar.update(bar, completed=value)

        async with ImportRpcClient() as rpc_client:
            controller = ImportSessionController(
                variant,
                rpc_client=rpc_client,
                token_provider=StaticTokenProvider(token),
                customer_id=customer_id,
                progress_factory=lambda: ProgressEstimator(on_change=on_progress),
            )

            try:
                session = controller.select_file(
                    SelectedFile(file_name=path.name, content=path.read_bytes())
                )
                if session.phase != ImportPhase.PREVIEWING:
                    self.print_error(session.error)
                    return 1

                self.print_preview(session.file, session.preview)
                if not assume_yes and not Confirm.ask(
                    f"Import {session.preview.total_row_count:,} rows?", console=self.console
                ):
                    self.console.print("[yellow]Import cancelled.[/yellow]")
                    return 1

                with progress_bar:
                    session = await controller.confirm_import()
            finally:
                controller.close()

        if session.phase != ImportPhase.REPORTING:
            self.print_error(session.error)
            return 1

        self.print_outcome(session.outcome)
        return 0


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the import console."""
    parser = argparse.ArgumentParser(description="Import contacts from a CSV file")
    parser.add_argument("file", type=Path, help="CSV file to import")
    parser.add_argument(
        "--variant",
        choices=[variant.name for variant in list_variants()],
        default="contact_master",
        help="Import flow to use (default: contact_master)",
    )
    parser.add_argument("--customer-id", help="Owning customer (required for the 'contact' variant)")
    parser.add_argument("--token", help="Bearer token (defaults to AUTH_TOKEN from the environment)")
    parser.add_argument("--yes", action="store_true", help="Import without asking for confirmation")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    import_console = ImportConsole()
    if not args.file.is_file():
        import_console.console.print(f"[red]File not found: {args.file}[/red]")
        return 1

    try:
        return asyncio.run(
            import_console.run(
                args.file,
                args.variant,
                customer_id=args.customer_id,
                token=args.token,
                assume_yes=args.yes,
            )
        )
    except ValueError as e:
        import_console.console.print(f"[red]{e}[/red]")
        return 1
    except KeyboardInterrupt:
        import_console.console.print("\n[yellow]Interrupted.[/yellow]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
