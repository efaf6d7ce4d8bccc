"""Utility modules for Pangea.

This package contains utility modules for Terraform interpolation strings
and Terraform variable files.
"""

from .string_utils import (
    interpolation,
    is_interpolation,
    contains_interpolation,
    find_references,
    snake_to_camel,
)
from .terraform_utils import getvar, tfvar_read, merge_varfiles

__all__ = [
    # String utilities
    "interpolation",
    "is_interpolation",
    "contains_interpolation",
    "find_references",
    "snake_to_camel",
    # Terraform utilities
    "getvar",
    "tfvar_read",
    "merge_varfiles",
]
