"""Custom exception types for Pangea.

This module defines the exception hierarchy for Pangea errors, enabling
precise error handling and contextual error messages throughout the library.

Exception Hierarchy:
    PangeaError (base)
    ├── ResourceValidationError - Attribute validation failures
    ├── SynthesisError - Invalid use of the synthesizer
    │   └── DuplicateResourceError - Same type.name declared twice
    ├── UnknownResourceError - Resource type not found in the registry
    ├── TemplateLoadError - Template file cannot be loaded
    └── TerraformParsingError - Terraform variable file parsing failures
"""

from typing import Any, Dict, List, Optional


class PangeaError(Exception):
    """Base exception for all Pangea-specific errors.

    Attributes:
        message: Human-readable error description
        context: Additional contextual information (e.g., resource type, file path)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        """Initialize PangeaError.

        Args:
            message: Human-readable error description
            context: Optional dict with additional context (resource type, paths, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ResourceValidationError(PangeaError):
    """Raised when resource attributes fail validation.

    The message is the first failing rule, e.g.
    "Stage name must contain only alphanumeric characters and underscores".
    Every failure found is kept in ``errors``.

    Examples:
        - Enumeration mismatch (engine_type not ActiveMQ/RabbitMQ)
        - Numeric range violations (disk_size below 20)
        - Cross-field rules (LDAP metadata missing for ldap authentication)
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        errors: Optional[List[Dict[str, str]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = dict(context or {})
        if resource_type:
            context.setdefault("resource_type", resource_type)
        super().__init__(message, context)
        self.resource_type = resource_type
        self.errors = errors or []


class SynthesisError(PangeaError):
    """Raised when the synthesizer is used incorrectly.

    Examples:
        - Empty resource type or name
        - Nested block assigned a non-mapping value
    """

    pass


class DuplicateResourceError(SynthesisError):
    """Raised when a resource or data source address is declared twice."""

    pass


class UnknownResourceError(PangeaError):
    """Raised when a resource type is not present in the registry."""

    pass


class TemplateLoadError(PangeaError):
    """Raised when a template file cannot be imported or used.

    Examples:
        - File does not exist
        - Syntax or import errors inside the template
        - No ``template`` callable defined
    """

    pass


class TerraformParsingError(PangeaError):
    """Raised when Terraform variable file parsing fails.

    Examples:
        - Invalid HCL2 syntax
        - Invalid access path in a variable lookup
    """

    pass
