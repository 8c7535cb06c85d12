"""
Console reporter for ETL results.

Formats per-layer outcomes using Rich for clear, colored output.
"""

from rich.console import Console
from rich.table import Table

from transitmap.etl.pipeline import ETLResult, LayerResult


class ConsoleReporter:
    """Formats and displays layer results to the console."""

    def __init__(self, console: Console) -> None:
        """
        Initialize console reporter.

        Args:
            console: Rich Console instance for output.
        """
        self.console = console

    def print_results(self, result: ETLResult) -> None:
        """
        Print layer results as a formatted table.

        Args:
            result: ETL result to display.
        """
        table = Table(title="Layer Results", show_header=True)
        table.add_column("Layer", style="cyan", no_wrap=True)
        table.add_column("Mode", style="blue")
        table.add_column("Geometry")
        table.add_column("Status", justify="center")
        table.add_column("Features", justify="right")
        table.add_column("Details", style="dim")

        for layer in result.results:
            table.add_row(
                layer.spec.name,
                layer.spec.mode,
                layer.spec.kind.value,
                self._format_status(layer),
                str(layer.rows) if layer.rows is not None else "-",
                self._format_details(layer),
            )

        self.console.print(table)
        self._print_summary(result)

    def _format_status(self, layer: LayerResult) -> str:
        """Format layer status with color."""
        if layer.ok:
            return "[green]OK[/green]"
        return "[red]Failed[/red]"

    def _format_details(self, layer: LayerResult) -> str:
        """Short error description, truncated for the table."""
        if layer.ok:
            return ""
        text = f"{layer.error_type}: {layer.error}"
        return text if len(text) <= 80 else text[:77] + "..."

    def _print_summary(self, result: ETLResult) -> None:
        """Print a one-line summary."""
        n_total = len(result.results)
        n_failed = len(result.failures)
        n_ok = n_total - n_failed

        self.console.print()
        if n_failed == 0:
            self.console.print(f"[green]All {n_total} layers loaded[/green]")
        elif n_ok == 0:
            self.console.print(f"[red]All {n_total} layers failed[/red]")
        else:
            self.console.print(
                f"[yellow]{n_ok} of {n_total} layers loaded, "
                f"{n_failed} failed (map renders without them)[/yellow]"
            )
