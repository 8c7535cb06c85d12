"""Command-line interface for the transitmap pipeline."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="transitmap",
    help="Fetch transit stops and routes from ArcGIS and render an interactive map.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration YAML file. Uses the packaged MBTA config if omitted.",
        exists=True,
        dir_okay=False,
    ),
]


@app.command()
def render(
    config: ConfigOption = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output path for the HTML map.",
        ),
    ] = None,
    input_dir: Annotated[
        Path | None,
        typer.Option(
            "--input-dir",
            "-i",
            help="Read '<layer>.json' query responses from this directory instead of the service.",
            exists=True,
            file_okay=False,
        ),
    ] = None,
    sequential: Annotated[
        bool,
        typer.Option(
            "--sequential",
            help="Load layers one after another instead of in parallel.",
        ),
    ] = False,
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)."),
    ] = "INFO",
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Emit logs as JSON lines."),
    ] = False,
) -> None:
    """Fetch all layers and render the map."""
    from transitmap.config.loader import load_config
    from transitmap.errors import RenderError
    from transitmap.etl import ConsoleReporter, run_etl
    from transitmap.render import render_map
    from transitmap.utils.logging import configure_logging

    configure_logging(level=log_level, json_output=json_logs)

    try:
        pipeline_config = load_config(config)
    except (ValueError, OSError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from e

    source = str(input_dir) if input_dir else pipeline_config.service.base_url
    console.print(f"[blue]Loading layers for '{pipeline_config.project}'[/blue]")
    console.print(f"[dim]Source: {source}[/dim]")

    result = run_etl(
        pipeline_config,
        input_dir=input_dir,
        parallel=False if sequential else None,
    )
    ConsoleReporter(console).print_results(result)

    if result.all_failed:
        console.print("[red]No layer could be loaded, nothing to render[/red]")
        raise typer.Exit(code=1)

    try:
        path = render_map(pipeline_config, result.layers, output)
    except RenderError as e:
        console.print(f"[red]Rendering failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[green]Saved map to: {path}[/green]")


@app.command()
def layers(config: ConfigOption = None) -> None:
    """Show configured layers and their query URLs."""
    from transitmap.config.loader import load_config

    try:
        pipeline_config = load_config(config)
    except (ValueError, OSError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from e

    table = Table(title=f"Layers ({pipeline_config.project})")
    table.add_column("Layer", style="cyan", no_wrap=True)
    table.add_column("Mode", style="blue")
    table.add_column("Geometry")
    table.add_column("Enabled", justify="center")
    table.add_column("Query URL", style="dim")

    for spec in pipeline_config.layer_specs(include_disabled=True):
        table.add_row(
            spec.name,
            spec.mode,
            spec.kind.value,
            "[green]yes[/green]" if spec.layer.enabled else "[yellow]no[/yellow]",
            pipeline_config.service.query_url(spec.layer.layer_id),
        )

    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from transitmap import __version__

    console.print(f"transitmap version {__version__}")


if __name__ == "__main__":
    app()
