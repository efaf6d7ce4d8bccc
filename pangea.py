#!/usr/bin/env python
import json
import logging
import sys

import click

import modules.config_loader as config_loader
import modules.graphmaker as graphmaker
import modules.template_loader as template_loader
from modules.exceptions import PangeaError, ResourceValidationError
from modules.registry import registry
from modules.utils.terraform_utils import merge_varfiles
import resource_classes.aws  # noqa: F401  registers every AWS resource function


__version__ = "0.1"


def my_excepthook(exc_type, exc_value, exc_traceback):
    click.echo(
        click.style(f"\nERROR: {exc_type.__name__}: {exc_value}", fg="red", bold=True),
        err=True,
    )


def _setup(debug: bool):
    if debug:
        logging.basicConfig(level=logging.DEBUG)
    else:
        sys.excepthook = my_excepthook


def _print_json(outputdict, title: str):
    click.echo(click.style(f"\n{title}:\n", fg="white", bold=True))
    click.echo(json.dumps(outputdict, indent=4, sort_keys=True))


def _export(outputdict, outfile: str):
    if not outfile.endswith(".json"):
        outfile += ".json"
    click.echo(f"\nExporting into file {outfile}")
    with open(outfile, "w") as f:
        json.dump(outputdict, f, indent=4, sort_keys=True)


def compile_template(template: str, config: str, namespace: str, varfile: list):
    """Run a template with its namespace configuration and variable files.

    Args:
        template: Path to the template ``.py`` file
        config: Path to ``pangea.yaml`` (optional)
        namespace: Namespace name (optional)
        varfile: Paths to .tfvars variable files

    Returns:
        TerraformSynthesizer holding the declared blocks
    """
    namespace_config = config_loader.load_config(config, namespace)
    variables = merge_varfiles(varfile)
    click.echo(
        f"Synthesizing {template} for namespace {namespace_config.name} "
        f"({namespace_config.region})"
    )
    return template_loader.run_template(template, namespace_config, variables)


@click.version_option(version=__version__, prog_name="pangea")
@click.group()
def cli():
    """
    Pangea synthesizes validated AWS resource definitions into Terraform JSON

    For help with a specific command type:

    pangea [COMMAND] --help

    """
    pass


@cli.command()
@click.option("--debug", is_flag=True, default=False, help="Dump exception tracebacks")
@click.option("--template", required=True, help="Path to template file (.py)")
@click.option("--config", default=None, help="Path to project configuration (pangea.yaml)")
@click.option("--namespace", default=None, help="Configuration namespace to synthesize for")
@click.option(
    "--varfile", multiple=True, default=[], help="Path to .tfvars variables file"
)
@click.option(
    "--outfile",
    default="main.tf.json",
    help="Filename for Terraform JSON output (default main.tf.json)",
)
def synth(debug, template, config, namespace, varfile, outfile):
    """Synthesize a template into Terraform JSON"""
    _setup(debug)
    synthesizer = compile_template(template, config, namespace, varfile)
    _print_json(synthesizer.synthesis, "Terraform JSON")
    _export(synthesizer.synthesis, outfile)
    click.echo("\nCompleted!")


@cli.command()
@click.option("--category", default=None, help="Only list resources in this category")
def resources(category):
    """List registered resource types"""
    categories = [category] if category else registry.categories()
    for name in categories:
        resource_types = registry.resource_types(category=name)
        if not resource_types:
            click.echo(click.style(f"\nNo resources in category '{name}'", fg="red"))
            continue
        click.echo(click.style(f"\n{name}:", fg="white", bold=True))
        for resource_type in resource_types:
            click.echo(f"  {resource_type}")


@cli.command()
@click.option("--debug", is_flag=True, default=False, help="Dump exception tracebacks")
@click.option("--template", required=True, help="Path to template file (.py)")
@click.option("--config", default=None, help="Path to project configuration (pangea.yaml)")
@click.option("--namespace", default=None, help="Configuration namespace to synthesize for")
@click.option(
    "--varfile", multiple=True, default=[], help="Path to .tfvars variables file"
)
@click.option(
    "--show_services",
    is_flag=True,
    default=False,
    help="Only show unique list of resource types actually used",
)
@click.option(
    "--outfile",
    default="graphdata",
    help="Filename for output list (default graphdata.json)",
)
def graphdata(debug, template, config, namespace, varfile, show_services, outfile):
    """List resources and their references as JSON"""
    _setup(debug)
    synthesizer = compile_template(template, config, namespace, varfile)
    graph = graphmaker.make_graph(synthesizer.synthesis)
    for cycle in graphmaker.find_circular_refs(graph):
        click.echo(
            click.style(f"  Circular reference: {' -> '.join(cycle)}", fg="yellow")
        )
    output = graphmaker.unique_services(graph) if show_services else graph
    _print_json(output, "Output JSON Dictionary")
    _export(output, outfile)
    click.echo("\nCompleted!")


@cli.command()
@click.option("--debug", is_flag=True, default=False, help="Dump exception tracebacks")
@click.option("--template", required=True, help="Path to template file (.py)")
@click.option("--config", default=None, help="Path to project configuration (pangea.yaml)")
@click.option("--namespace", default=None, help="Configuration namespace to synthesize for")
@click.option(
    "--varfile", multiple=True, default=[], help="Path to .tfvars variables file"
)
def validate(debug, template, config, namespace, varfile):
    """Validate a template without writing output"""
    _setup(debug)
    try:
        synthesizer = compile_template(template, config, namespace, varfile)
    except ResourceValidationError as e:
        click.echo(click.style(f"\nValidation failed: {e}", fg="red", bold=True))
        for error in e.errors[1:]:
            click.echo(click.style(f"  {error['message']}", fg="red"))
        sys.exit(1)
    except PangeaError as e:
        click.echo(click.style(f"\nERROR: {e}", fg="red", bold=True))
        sys.exit(1)
    click.echo(
        click.style(
            f"\nValid: {len(synthesizer.resource_addresses())} resources declared",
            fg="green",
            bold=True,
        )
    )


if __name__ == "__main__":
    cli()
