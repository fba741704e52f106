"""Command-line interface for httpbind code generation."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from httpbind.generator import python
from httpbind.generator.loader import ModelError, load_file
from httpbind.generator.plan import GenerationError, plan_operations, select_service
from httpbind.generator.protocols import filter_model, resolve_protocol
from httpbind.generator.settings import GeneratorSettings, SettingsError

if TYPE_CHECKING:
    from httpbind.generator.plan import OperationPlan
    from httpbind.generator.protocols import ProtocolDescriptor

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
def cli() -> None:
    """HTTP binding code generator."""


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input model file (JSON AST)")
@click.option("--output", "-o", "output_file", required=True, help="Output file")
@click.option("--protocol", "-p", default=None, help="Protocol to generate for (default: service trait)")
@click.option("--service", "-s", default=None, help="Service shape id (default: the only service)")
@click.option(
    "--runtime-import",
    "runtime_import",
    is_flag=False,
    flag_value="httpbind.proto",
    default=None,
    help="Import path for runtime. No value=httpbind.proto, omit=httpbind_runtime",
)
@click.option("--config", "-c", "config_file", default=None, help="JSON settings file")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log generation details")
def gen(
    input_file: str,
    output_file: str,
    protocol: str | None,
    service: str | None,
    runtime_import: str | None,
    config_file: str | None,
    verbose: bool,
) -> None:
    """Generate binding code from a model file."""
    _setup_logging(verbose)
    try:
        settings = GeneratorSettings.load(config_file) if config_file else GeneratorSettings()
        if runtime_import is None and not config_file:
            # Default to "httpbind_runtime", as written by the runtime command
            runtime_import = "httpbind_runtime"
        settings = settings.override(service=service, protocol=protocol, runtime_import=runtime_import)
        generated_file = python.generate(load_file(input_file), settings)
    except (ModelError, SettingsError, GenerationError) as err:
        raise click.ClickException(str(err)) from err

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(generated_file)
    logger.info("wrote %s", output_file)


@cli.command()
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option("--name", default="httpbind_runtime", help="Runtime folder name")
def runtime(output_path: str, name: str) -> None:
    """Generate runtime support code."""
    runtime_dir = Path(output_path) / name
    runtime_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in python.runtime().items():
        (runtime_dir / filename).write_text(content)
    print(f"Generated Python runtime in {runtime_dir}")


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input model file (JSON AST)")
@click.option("--protocol", "-p", default=None, help="Protocol override")
@click.option("--service", "-s", default=None, help="Service shape id")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log generation details")
def info(
    input_file: str, protocol: str | None, service: str | None, output_json: bool, verbose: bool
) -> None:
    """Display resolved bindings and redaction per operation."""
    _setup_logging(verbose)
    try:
        model = load_file(input_file)
        service_shape = select_service(model, service)
        proto = resolve_protocol(service_shape, protocol)
        filtered = filter_model(model, proto)
        plans = plan_operations(filtered, proto, filtered.expect_shape(service_shape.id))
    except (ModelError, GenerationError) as err:
        raise click.ClickException(str(err)) from err

    if output_json:
        _output_json(service_shape.id, proto, plans)
    else:
        _output_plain(service_shape.id, proto, plans)


def _bindings_data(plan: OperationPlan) -> dict[str, list[dict[str, Any]]]:
    def rows(bindings: list) -> list[dict[str, Any]]:
        return [
            {
                "member": b.member.name,
                "location": b.location.value,
                "name": b.location_name or None,
            }
            for b in bindings
        ]

    data = {"request": rows(plan.request), "response": rows(plan.response)}
    for error, bindings in plan.errors:
        data[error.name] = rows(bindings)
    return data


def _output_json(service_id: str, protocol: ProtocolDescriptor, plans: list[OperationPlan]) -> None:
    """Output binding info as JSON."""
    data: dict = {"service": service_id, "protocol": protocol.to_dict(), "operations": {}}

    for plan in plans:
        sensitivity = plan.sensitivity
        data["operations"][plan.shape.name] = {
            "method": plan.http.method,
            "uri": str(plan.http.uri),
            "code": plan.http.code,
            "bindings": _bindings_data(plan),
            "checksum": {
                "requestAlgorithmMember": (
                    plan.checksum.request_algorithm_member.name
                    if plan.checksum and plan.checksum.request_algorithm_member
                    else None
                ),
                "responseAlgorithms": list(plan.checksum.response_algorithms) if plan.checksum else [],
            },
            "sensitive": {
                "path": list(sensitivity.path_indexes),
                "query": list(sensitivity.query_keys),
                "queryParams": sensitivity.query_params,
                "requestHeaders": list(sensitivity.request_headers),
                "requestPrefixHeaders": list(sensitivity.request_prefix_headers),
                "responseHeaders": list(sensitivity.response_headers),
                "responsePrefixHeaders": list(sensitivity.response_prefix_headers),
                "statusCode": sensitivity.status_code,
            },
        }

    print(json.dumps(data, indent=2))


def _output_plain(service_id: str, protocol: ProtocolDescriptor, plans: list[OperationPlan]) -> None:
    """Output binding info using rich text formatting."""
    console = Console()

    console.print("[bold cyan]Service[/bold cyan]")
    service_table = Table(show_header=False, box=None, padding=(0, 2, 0, 2))
    service_table.add_column("Label", style="dim")
    service_table.add_column("Value", style="white")
    service_table.add_row("Id", service_id)
    service_table.add_row("Protocol", protocol.name)
    service_table.add_row("Timestamps", protocol.default_timestamp_format.value)
    console.print(service_table)
    console.print()

    for plan in plans:
        console.print(f"[bold cyan]{plan.shape.name}[/bold cyan] {plan.http.method} {plan.http.uri}")
        table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
        table.add_column("Message", style="dim")
        table.add_column("Member", style="white")
        table.add_column("Location", style="yellow")
        table.add_column("Name", style="green")

        for message, rows in _bindings_data(plan).items():
            for row in rows:
                table.add_row(message, row["member"], row["location"], row["name"] or "")
        console.print(table)

        if not plan.sensitivity.is_empty:
            parts = []
            if plan.sensitivity.has_path:
                parts.append("path")
            if plan.sensitivity.has_query:
                parts.append("query")
            if plan.sensitivity.has_request_headers or plan.sensitivity.has_response_headers:
                parts.append("headers")
            if plan.sensitivity.status_code:
                parts.append("status")
            console.print(f"  [red]redacted:[/red] {', '.join(parts)}")
        console.print()


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
