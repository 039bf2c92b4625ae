from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from adapters.filesystem.diagram_repository import FileSystemDiagramRepository
from adapters.filesystem.flow_source import FileSystemFlowSource
from adapters.filesystem.json_utils import dump_json_bytes
from adapters.layout.sankey import SankeyLayoutEngine
from app.config import load_settings
from domain.errors import FlowDiagramError, LayoutError
from domain.models import CurveStyle, DataFormat, FrameTarget
from domain.services.build_flow_diagram import FlowDiagramBuilder
from domain.services.color_resolver import ColorScheme
from domain.services.parse_flow_graph import try_parse_flow_graph
from domain.services.sample_data import SAMPLE_DATASETS, get_sample

app = typer.Typer(no_args_is_help=True)
samples_app = typer.Typer(no_args_is_help=True)
app.add_typer(samples_app, name="samples")
console = Console()

_FRAME_PATTERN = re.compile(
    r"^\s*(?P<w>\d+(?:\.\d+)?)x(?P<h>\d+(?:\.\d+)?)"
    r"(?:\+(?P<x>-?\d+(?:\.\d+)?)\+(?P<y>-?\d+(?:\.\d+)?))?\s*$"
)


def parse_frame(value: str) -> FrameTarget:
    match = _FRAME_PATTERN.match(value)
    if not match:
        msg = f"Frame must look like WIDTHxHEIGHT or WIDTHxHEIGHT+X+Y, got {value!r}"
        raise typer.BadParameter(msg)
    return FrameTarget(
        width=float(match.group("w")),
        height=float(match.group("h")),
        x=float(match.group("x") or 0.0),
        y=float(match.group("y") or 0.0),
    )


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _print_error(exc: FlowDiagramError) -> None:
    console.print(f"[red]{exc.kind.capitalize()} error:[/] {escape(exc.message)}")
    if exc.suggestion:
        console.print(f"[yellow]Hint:[/] {escape(exc.suggestion)}")


@app.command("render")
def render(
    input_path: Path = typer.Argument(..., help="Flow data file (.json, .csv or .tsv)."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the payload here (.json) or an SVG (.svg)."
    ),
    data_format: Optional[DataFormat] = typer.Option(
        None, "--format", "-f", help="Input format; inferred from the file suffix by default."
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML settings file."),
    width: Optional[float] = typer.Option(None, help="Layout width."),
    height: Optional[float] = typer.Option(None, help="Layout height."),
    curve_style: Optional[CurveStyle] = typer.Option(None, help="Ribbon style."),
    palette: Optional[ColorScheme] = typer.Option(None, help="Named color scheme."),
    frame: Optional[str] = typer.Option(
        None, help="Fit into a frame: WIDTHxHEIGHT or WIDTHxHEIGHT+X+Y."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    _configure_logging(verbose)
    try:
        settings = load_settings(config_path)
    except FileNotFoundError as exc:
        console.print(f"[red]{escape(str(exc))}[/]")
        raise typer.Exit(code=1) from exc
    except PydanticValidationError as exc:
        console.print("[red]Invalid settings:[/]")
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"])
            console.print(f"  {escape(location)}: {escape(error['msg'])}")
        raise typer.Exit(code=1) from exc
    layout_settings = settings.layout.model_copy(
        update={
            key: value
            for key, value in {"width": width, "height": height}.items()
            if value is not None
        }
    )
    style_settings = settings.style.model_copy(
        update={
            key: value
            for key, value in {"curve_style": curve_style, "palette": palette}.items()
            if value is not None
        }
    )
    frame_target = parse_frame(frame) if frame else None

    builder = FlowDiagramBuilder(SankeyLayoutEngine(layout_settings.to_layout_config()))
    try:
        flow_input = FileSystemFlowSource().load(input_path, data_format)
        diagram = builder.build_from_text(
            flow_input.text,
            flow_input.data_format,
            style_settings.to_diagram_options(frame_target),
        )
    except LayoutError as exc:
        _print_error(exc)
        raise typer.Exit(code=2) from exc
    except FlowDiagramError as exc:
        _print_error(exc)
        raise typer.Exit(code=1) from exc

    if output is None:
        typer.echo(dump_json_bytes(diagram.to_dict()).decode("utf-8"))
        return
    FileSystemDiagramRepository().save(diagram, output)
    console.print(
        f"[green]Wrote[/] {output} "
        f"({len(diagram.nodes)} nodes, {len(diagram.edges)} links)"
    )


@app.command("validate")
def validate(
    input_path: Path = typer.Argument(..., help="Flow data file to validate."),
    data_format: Optional[DataFormat] = typer.Option(None, "--format", "-f"),
) -> None:
    try:
        flow_input = FileSystemFlowSource().load(input_path, data_format)
    except FlowDiagramError as exc:
        _print_error(exc)
        raise typer.Exit(code=1) from exc

    result = try_parse_flow_graph(flow_input.text, flow_input.data_format)
    graph = result.graph
    if graph is None:
        error = result.error
        message = error.message if error else "unknown error"
        console.print(f"[red]Validation failed:[/] {escape(message)}")
        if error and error.suggestion:
            console.print(f"[yellow]Hint:[/] {escape(error.suggestion)}")
        raise typer.Exit(code=1)
    console.print(
        f"[green]Valid {flow_input.data_format.value.upper()} flow data:[/] {input_path} "
        f"({len(graph.nodes)} nodes, {len(graph.edges)} links)"
    )


@samples_app.command("list")
def list_samples() -> None:
    table = Table()
    table.add_column("id", no_wrap=True)
    table.add_column("name")
    table.add_column("description")
    for dataset in SAMPLE_DATASETS:
        table.add_row(dataset.id, dataset.name, dataset.description)
    console.print(table)


@samples_app.command("export")
def export_sample(
    sample_id: str = typer.Argument(..., help="Sample id, see `samples list`."),
    output: Path = typer.Argument(..., help="Target file; the suffix picks the format."),
) -> None:
    try:
        dataset = get_sample(sample_id)
    except KeyError as exc:
        console.print(f"[red]Unknown sample:[/] {sample_id}")
        raise typer.Exit(code=1) from exc

    suffix = output.suffix.lower().lstrip(".")
    data_format = DataFormat(suffix) if suffix in {fmt.value for fmt in DataFormat} else None
    if data_format is None:
        console.print(f"[red]Unsupported sample format:[/] {output.suffix or '(none)'}")
        raise typer.Exit(code=1)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(dataset.to_text(data_format), encoding="utf-8")
    console.print(f"[green]Wrote[/] {output}")


if __name__ == "__main__":
    app()
