"""String manipulation utilities for Pangea.

This module provides helpers for building and recognising Terraform
interpolation expressions and for converting attribute names.
"""

import re
from typing import List, Tuple

# ${aws_vpc.main.id}, ${data.aws_ami.ubuntu.id}, ${aws_eks_cluster.c.certificate_authority[0].data}
REFERENCE_PATTERN = re.compile(
    r"\$\{\s*(data\.)?([a-z][a-z0-9_]*)\.([A-Za-z_][A-Za-z0-9_-]*)\.([A-Za-z0-9_\[\].]+?)\s*\}"
)

INTERPOLATION_PATTERN = re.compile(r"^\$\{.+\}$", re.DOTALL)


def interpolation(resource_type: str, name: str, attribute: str) -> str:
    """Build a Terraform interpolation expression for a resource attribute.

    Args:
        resource_type: Terraform resource type (e.g. ``aws_vpc``)
        name: Resource name in the configuration
        attribute: Attribute path (e.g. ``id`` or ``instances.0.console_url``)

    Returns:
        Interpolation string ``${resource_type.name.attribute}``
    """
    return "${" + f"{resource_type}.{name}.{attribute}" + "}"


def is_interpolation(value) -> bool:
    """Return True if value is a whole-string Terraform interpolation."""
    return isinstance(value, str) and bool(INTERPOLATION_PATTERN.match(value.strip()))


def contains_interpolation(value) -> bool:
    """Return True if value embeds at least one ``${...}`` expression."""
    return isinstance(value, str) and "${" in value


def find_references(text: str) -> List[Tuple[str, str]]:
    """Extract resource addresses referenced from a string.

    Args:
        text: Any string, possibly containing several interpolations

    Returns:
        List of ``(address, attribute)`` tuples in order of appearance. Data
        source addresses keep their ``data.`` prefix.
    """
    if not text or "${" not in text:
        return []
    found = []
    for match in REFERENCE_PATTERN.finditer(text):
        prefix, resource_type, name, attribute = match.groups()
        address = f"{prefix or ''}{resource_type}.{name}"
        found.append((address, attribute))
    return found


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)
