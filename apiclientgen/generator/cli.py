"""Command-line interface for apiclientgen."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from apiclientgen.generator import plugin
from apiclientgen.generator.apiclient import generate
from apiclientgen.generator.config import GeneratorConfig, NamedPackages
from apiclientgen.generator.descriptors import DescriptorLoader
from apiclientgen.generator.errors import GenerationError
from apiclientgen.generator.grouping import group_files
from apiclientgen.generator.parser import parse_files
from apiclientgen.generator.types import File, GenerationUnit
from apiclientgen.generator.validate import method_shape
from apiclientgen.log import configure_logging, get_logger

logger = get_logger(__name__)

input_option = click.option(
    "--input",
    "-i",
    "input_files",
    multiple=True,
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Input .proto file (repeatable)",
)
proto_path_option = click.option(
    "--proto-path",
    "-I",
    "include_dirs",
    multiple=True,
    type=click.Path(file_okay=False),
    help="Directory to search for imports (repeatable)",
)
param_option = click.option(
    "--param", "params", multiple=True, help="Generator option as key=value"
)
config_option = click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file with generator options",
)


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Go API client generator for protobuf services."""
    configure_logging(verbose=verbose)


def _load_files(input_files: tuple[str, ...], include_dirs: tuple[str, ...]) -> list[File]:
    protos, to_generate = parse_files(input_files, include_dirs)
    return DescriptorLoader(protos, to_generate).load()


def _load_config(config_file: str | None, params: tuple[str, ...]) -> GeneratorConfig:
    config = GeneratorConfig()
    if config_file:
        with open(config_file, encoding="utf-8") as f:
            config = GeneratorConfig.from_json(f.read())
    return config.with_parameters(list(params))


@cli.command()
@input_option
@proto_path_option
@click.option("--output", "-o", "output_dir", required=True, help="Output directory")
@param_option
@config_option
def gen(
    input_files: tuple[str, ...],
    include_dirs: tuple[str, ...],
    output_dir: str,
    params: tuple[str, ...],
    config_file: str | None,
) -> None:
    """Generate Go API client code from protobuf files."""
    try:
        config = _load_config(config_file, params)
        artifacts = generate(_load_files(input_files, include_dirs), config)
    except GenerationError as err:
        raise click.ClickException(str(err)) from err

    out = Path(output_dir)
    for artifact in artifacts:
        path = out / artifact.name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(artifact.content, encoding="utf-8")
        logger.debug("wrote %s", path)
    logger.info("Generated %d files in %s", len(artifacts), out)


@cli.command()
@input_option
@proto_path_option
@param_option
@config_option
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(
    input_files: tuple[str, ...],
    include_dirs: tuple[str, ...],
    params: tuple[str, ...],
    config_file: str | None,
    output_json: bool,
) -> None:
    """Display generation units, services and method shapes."""
    try:
        config = _load_config(config_file, params)
        units = group_files(_load_files(input_files, include_dirs))
    except GenerationError as err:
        raise click.ClickException(str(err)) from err

    if output_json:
        _output_json(units, config)
    else:
        _output_plain(units)


@cli.command(name="plugin")
def plugin_command() -> None:
    """Run as a protoc plugin over stdin and stdout."""
    plugin.main()


def _output_json(units: list[GenerationUnit], config: GeneratorConfig) -> None:
    """Output unit info as JSON."""
    named = NamedPackages(config)
    data: list[dict] = []
    for unit in units:
        data.append(
            {
                "go_import_path": unit.go_import_path,
                "go_package_name": unit.go_package_name,
                "output_package": named.package_name(unit, config.plugin_name),
                "files": [f.name for f in unit.files],
                "services": {
                    service.full_name: {
                        method.name: method_shape(method).value for method in service.methods
                    }
                    for service in unit.services
                },
            }
        )
    print(json.dumps(data, indent=2))


def _output_plain(units: list[GenerationUnit]) -> None:
    """Output unit info using rich text formatting."""
    console = Console()

    if not units:
        console.print("[dim]No services to generate[/dim]")
        return

    for unit in units:
        console.print(f"[bold cyan]{unit.go_import_path}[/bold cyan] ({unit.go_package_name})")

        table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
        table.add_column("Service", style="white")
        table.add_column("Method", style="white")
        table.add_column("Shape", style="dim")
        table.add_column("In", style="yellow", justify="right")
        table.add_column("Out", style="yellow", justify="right")

        for service in unit.services:
            for method in service.methods:
                shape = method_shape(method).value
                shape_str = shape if shape == "unary" else f"[red]{shape}[/red]"
                table.add_row(
                    service.name,
                    method.name,
                    shape_str,
                    str(len(method.input.fields)),
                    str(len(method.output.fields)),
                )

        console.print(table)
        console.print()


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
