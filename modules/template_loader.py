"""Template loading for Pangea.

A template is a Python file defining ``template(synth, variables)``. The
function declares resources on the synthesizer it receives:

    from resource_classes.aws.network import aws_vpc

    def template(synth, variables):
        aws_vpc(synth, "main", {"cidr_block": variables.get("cidr", "10.0.0.0/16")})
"""

import importlib.util
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from modules.config_loader import NamespaceConfig
from modules.exceptions import PangeaError, TemplateLoadError
from modules.synthesizer import TerraformSynthesizer

logger = logging.getLogger(__name__)

TEMPLATE_FUNCTION = "template"


def load_template(path: str) -> Callable:
    """Import a template file and return its ``template`` callable.

    Args:
        path: Path to the template ``.py`` file

    Returns:
        The template function

    Raises:
        TemplateLoadError: If the file is missing, fails to import, or
            defines no callable ``template``
    """
    template_path = Path(path)
    if not template_path.is_file():
        raise TemplateLoadError(
            f"Template file not found: {path}", context={"path": str(path)}
        )

    module_name = f"pangea_template_{template_path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, template_path)
    if spec is None or spec.loader is None:
        raise TemplateLoadError(
            f"Cannot import template file: {path}", context={"path": str(path)}
        )
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except PangeaError:
        raise
    except Exception as e:
        raise TemplateLoadError(
            f"Failed to import template {path}: {e}", context={"path": str(path)}
        ) from e

    function = getattr(module, TEMPLATE_FUNCTION, None)
    if not callable(function):
        raise TemplateLoadError(
            f"Template {path} does not define a callable '{TEMPLATE_FUNCTION}'",
            context={"path": str(path)},
        )
    logger.debug("Loaded template %s", os.path.abspath(path))
    return function


def new_synthesizer(config: Optional[NamespaceConfig] = None) -> TerraformSynthesizer:
    """Create a synthesizer seeded from a namespace configuration."""
    config = config or NamespaceConfig()
    synth = TerraformSynthesizer(default_tags=config.default_tags)
    synth.provider("aws", config.provider_block())
    synth.terraform(config.terraform_block())
    return synth


def run_template(
    path: str,
    config: Optional[NamespaceConfig] = None,
    variables: Optional[Dict[str, Any]] = None,
) -> TerraformSynthesizer:
    """Load a template and run it against a fresh synthesizer.

    Args:
        path: Template file path
        config: Namespace configuration providing region, default tags and
            backend (built-in defaults when omitted)
        variables: Template variables (e.g. read from ``.tfvars`` files)

    Returns:
        The synthesizer holding every declared block

    Raises:
        TemplateLoadError: If the template cannot be loaded
        ResourceValidationError: If a resource rejects its attributes
    """
    function = load_template(path)
    synth = new_synthesizer(config)
    logger.info("Running template %s", path)
    function(synth, dict(variables or {}))
    logger.info("Template %s declared %d resources", path, len(synth.resource_addresses()))
    return synth
