"""
Configuration Loader Module for Pangea

This module loads the project configuration file (``pangea.yaml``) and
resolves the namespace a template is synthesized for. A namespace carries
the AWS region, default tags applied to every taggable resource and the
Terraform state backend.

Example file:

    project: platform
    default_namespace: development
    namespaces:
      development:
        region: us-east-1
        default_tags:
          Environment: development
        backend:
          type: local
          path: terraform.tfstate
      production:
        region: eu-west-1
        backend:
          type: s3
          bucket: platform-state
          key: production/terraform.tfstate
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from modules.exceptions import PangeaError

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "pangea.yaml"
DEFAULT_REGION = "us-east-1"
NAMESPACE_ENV_VAR = "PANGEA_NAMESPACE"


class ConfigurationError(PangeaError):
    """Raised when configuration loading fails."""

    pass


class BackendConfig(BaseModel):
    """Terraform state backend of a namespace."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["s3", "local"]
    bucket: Optional[str] = None
    key: Optional[str] = None
    region: Optional[str] = None
    dynamodb_table: Optional[str] = None
    encrypt: Optional[bool] = None
    path: Optional[str] = None

    @model_validator(mode="after")
    def check_backend(self):
        if self.type == "s3" and not (self.bucket and self.key):
            raise ValueError("s3 backend requires bucket and key")
        if self.type == "local" and (self.bucket or self.key or self.dynamodb_table):
            raise ValueError("local backend only accepts path")
        return self

    def render(self, default_region: str) -> Dict[str, Dict[str, Any]]:
        """Render the ``terraform.backend`` block."""
        if self.type == "local":
            settings = {"path": self.path} if self.path else {}
            return {"local": settings}
        settings = self.model_dump(exclude={"type", "path"}, exclude_none=True)
        settings.setdefault("region", default_region)
        return {"s3": settings}


class NamespaceConfig(BaseModel):
    """Resolved settings for one namespace."""

    model_config = ConfigDict(extra="forbid")

    name: str = "default"
    region: str = DEFAULT_REGION
    profile: Optional[str] = None
    default_tags: Dict[str, str] = Field(default_factory=dict)
    backend: Optional[BackendConfig] = None

    def provider_block(self) -> Dict[str, Any]:
        """Attributes of the ``aws`` provider block."""
        block: Dict[str, Any] = {"region": self.region}
        if self.profile:
            block["profile"] = self.profile
        return block

    def terraform_block(self) -> Dict[str, Any]:
        """Attributes of the top-level ``terraform`` block (may be empty)."""
        if self.backend is None:
            return {}
        return {"backend": self.backend.render(self.region)}


class ProjectConfig(BaseModel):
    """Contents of a ``pangea.yaml`` file."""

    model_config = ConfigDict(extra="forbid")

    project: Optional[str] = None
    default_namespace: Optional[str] = None
    namespaces: Dict[str, NamespaceConfig] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_default_namespace(self):
        if self.default_namespace and self.default_namespace not in self.namespaces:
            raise ValueError(
                f"default_namespace '{self.default_namespace}' is not a configured namespace"
            )
        return self

    def namespace(self, name: Optional[str]) -> NamespaceConfig:
        """Return the named namespace with its ``name`` filled in."""
        if name is None:
            return NamespaceConfig()
        if name not in self.namespaces:
            available = ", ".join(sorted(self.namespaces)) or "none"
            raise ConfigurationError(
                f"Unknown namespace '{name}'. Available namespaces: {available}",
                context={"namespace": name},
            )
        return self.namespaces[name].model_copy(update={"name": name})


def read_config(path: Optional[str] = None) -> ProjectConfig:
    """
    Read and validate a project configuration file.

    Args:
        path: Configuration file path. Defaults to ``pangea.yaml`` in the
            current directory; a missing default file yields an empty config.

    Returns:
        ProjectConfig

    Raises:
        ConfigurationError: If an explicit file is missing, the YAML is
            invalid, or the contents fail validation
    """
    config_path = Path(path or DEFAULT_CONFIG_FILE)
    if not config_path.exists():
        if path:
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                context={"path": str(config_path)},
            )
        logger.debug("No %s found, using defaults", DEFAULT_CONFIG_FILE)
        return ProjectConfig()

    try:
        with open(config_path, "r") as file:
            data = yaml.safe_load(file)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in {config_path}: {e}", context={"path": str(config_path)}
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file {config_path} must contain a mapping",
            context={"path": str(config_path)},
        )
    try:
        config = ProjectConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", str(e)).replace("Value error, ", "")
        raise ConfigurationError(
            f"Invalid configuration in {config_path}: {field + ': ' if field else ''}{message}",
            context={"path": str(config_path)},
        ) from e
    logger.info("Loaded configuration from %s", config_path)
    return config


def load_config(
    path: Optional[str] = None, namespace: Optional[str] = None
) -> NamespaceConfig:
    """
    Load the configuration and resolve the active namespace.

    The namespace is taken from the ``namespace`` argument, then the
    ``PANGEA_NAMESPACE`` environment variable, then ``default_namespace``.
    Without any of these the built-in defaults apply (``us-east-1``, no
    tags, no backend).

    Args:
        path: Optional configuration file path
        namespace: Optional namespace name

    Returns:
        NamespaceConfig for the resolved namespace

    Raises:
        ConfigurationError: If the file is invalid or the namespace unknown
    """
    config = read_config(path)
    name = namespace or os.getenv(NAMESPACE_ENV_VAR) or config.default_namespace
    resolved = config.namespace(name)
    logger.debug("Using namespace %s (region %s)", resolved.name, resolved.region)
    return resolved
