"""Command line entry point: ``clusterhealth`` / ``python -m clusterhealth``."""

import json

import click
import yaml
from dotenv import load_dotenv

from clusterhealth.logging_config import configure_logging
from clusterhealth.modules.config import get_config
from clusterhealth.modules.report import (
    ReportFactory,
    SectionConfigError,
    UnknownSectionError,
    render_fragment,
    render_text,
    sections_to_dict,
)


def _load_config():
    try:
        return get_config()
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}")


def _build_assembler(timeout, sections_file, cli_binary):
    config = _load_config()
    if timeout is not None:
        config.set("command_timeout", timeout)
    if sections_file is not None:
        config.set("sections_file", sections_file)
    if cli_binary is not None:
        config.set("cli_binary", cli_binary)
    try:
        return ReportFactory.build(config)
    except SectionConfigError as e:
        raise click.ClickException(str(e))


def _assembler_options(func):
    func = click.option("--cli", "cli_binary", default=None, help="Cluster CLI binary (default: oc).")(func)
    func = click.option(
        "--sections-file",
        type=click.Path(dir_okay=False),
        default=None,
        help="YAML section catalog replacing the built-in one.",
    )(func)
    func = click.option(
        "--timeout",
        type=click.IntRange(min=1),
        default=None,
        help="Per-command timeout in seconds.",
    )(func)
    return func


@click.group()
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ERROR).")
def main(log_level):
    """Generate a cluster health report from diagnostic commands."""
    load_dotenv()
    config = _load_config()
    configure_logging(log_level or config.get("log_level"))


@main.command()
@_assembler_options
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
def report(timeout, sections_file, cli_binary, as_json):
    """Run every section and print the report."""
    assembler = _build_assembler(timeout, sections_file, cli_binary)
    result = assembler.build_report()
    if as_json:
        click.echo(result.to_response().model_dump_json(indent=2))
    else:
        click.echo(render_text(result), nl=False)


@main.command()
@_assembler_options
@click.option("--json", "as_json", is_flag=True, help="Print the section as JSON.")
@click.argument("name")
def section(timeout, sections_file, cli_binary, as_json, name):
    """Run one section and print it."""
    assembler = _build_assembler(timeout, sections_file, cli_binary)
    try:
        fragment = assembler.render_section(name)
    except UnknownSectionError as e:
        raise click.ClickException(f"{e}. Available: {', '.join(assembler.section_names())}")
    if as_json:
        click.echo(fragment.to_response().model_dump_json(indent=2))
    else:
        click.echo(render_fragment(fragment), nl=False)


@main.command("sections")
@_assembler_options
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "yaml", "json"]),
    default="table",
    help="Output format.",
)
def list_sections(timeout, sections_file, cli_binary, output_format):
    """List the section catalog."""
    assembler = _build_assembler(timeout, sections_file, cli_binary)
    catalog = sections_to_dict(assembler.sections())
    if output_format == "yaml":
        click.echo(yaml.safe_dump(catalog, sort_keys=False), nl=False)
    elif output_format == "json":
        click.echo(json.dumps(catalog, indent=2))
    else:
        width = max(len(name) for name in assembler.section_names())
        for spec in assembler.sections():
            click.echo(f"{spec.name.ljust(width)}  {spec.title}  ({spec.command.display()})")


@main.command()
@click.option("--host", "host", default=None)
@click.option("--port", "port", type=int, default=None)
def serve(host, port):
    """Serve report sections over HTTP."""
    from clusterhealth.main import serve as serve_api

    serve_api(host=host, port=port)


if __name__ == "__main__":
    main()
