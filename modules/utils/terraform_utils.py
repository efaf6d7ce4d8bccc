"""Terraform variable utilities for Pangea.

Templates receive their variables as a plain dict built from ``.tfvars`` and
``.tfvars.json`` files. ``getvar`` looks values up in that dict the way
Terraform resolves ``var.`` expressions, with ``TF_VAR_<name>`` environment
variables taking precedence.
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import hcl2

from modules.exceptions import TerraformParsingError

# name, name.child, name[0], name["key"]
PATH_TOKEN = re.compile(r'\[([^\]]*)\]|([^.\[\]]+)')


def _split_path(path: str) -> List[str]:
    if path.count("[") != path.count("]"):
        raise TerraformParsingError(
            "Invalid access path: unbalanced brackets", context={"path": path}
        )
    tokens = []
    for index, key in PATH_TOKEN.findall(path):
        tokens.append(f"[{index}]" if key == "" else key)
    return tokens


def _lookup_key(mapping: Dict[str, Any], key: str, default: Any) -> Any:
    if key in mapping:
        return mapping[key]
    # Terraform variable names are matched case-insensitively as a fallback
    for candidate in mapping:
        if candidate.lower() == key.lower():
            return mapping[candidate]
    return default


def getvar(
    variable_name: str, all_variables_dict: Dict[str, Any], default: Any = None
) -> Any:
    """Retrieve a template variable from the environment or a variables dictionary.

    Supports dotted paths and list indices (``subnets[1]``, ``tags.Name``).
    A leading ``var.`` is ignored. ``TF_VAR_<name>`` overrides simple names.

    Args:
        variable_name: Name or path of the variable
        all_variables_dict: Variables read from var files
        default: Value returned when the variable cannot be resolved

    Returns:
        Resolved value or ``default``

    Raises:
        TerraformParsingError: If the path has unbalanced brackets or a
            non-numeric list index
    """
    if not variable_name:
        return default
    if variable_name.startswith("var."):
        variable_name = variable_name[4:]

    env_value = os.getenv(f"TF_VAR_{variable_name}")
    if env_value is not None:
        return env_value

    current: Any = all_variables_dict
    for token in _split_path(variable_name):
        if token.startswith("["):
            index = token[1:-1].strip()
            if not index.isdigit():
                raise TerraformParsingError(
                    "List index must be numeric",
                    context={"path": variable_name, "token": token},
                )
            if not isinstance(current, list) or int(index) >= len(current):
                return default
            current = current[int(index)]
        else:
            if not isinstance(current, dict):
                return default
            marker = object()
            current = _lookup_key(current, token, marker)
            if current is marker:
                return default
    return current


def tfvar_read(filepath: str) -> Dict[str, Any]:
    """Read and parse a Terraform variable file (.tfvars or .tfvars.json).

    Args:
        filepath: Path to variable file (HCL or JSON format)

    Returns:
        dict: Parsed variable definitions

    Raises:
        FileNotFoundError: If file does not exist
        TerraformParsingError: If file cannot be parsed
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Variable file not found: {filepath}")

    text = path.read_text()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    try:
        parsed = hcl2.loads(text)
    except Exception as e:
        raise TerraformParsingError(
            f"Failed to parse variable file: {filepath}",
            context={"error": str(e), "filepath": filepath},
        ) from e

    # python-hcl2 wraps single values in lists
    return {
        key: value[0] if isinstance(value, list) and len(value) == 1 else value
        for key, value in parsed.items()
    }


def merge_varfiles(varfiles: Optional[Iterable[str]]) -> Dict[str, Any]:
    """Read several variable files, later files overriding earlier ones."""
    variables: Dict[str, Any] = {}
    for varfile in varfiles or []:
        variables.update(tfvar_read(varfile))
    return variables
