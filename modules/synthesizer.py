"""Terraform JSON synthesis.

``TerraformSynthesizer`` collects resource, data, provider, variable, output,
locals and terraform blocks and renders them into the Terraform JSON
configuration tree:

    synth = TerraformSynthesizer()
    with synth.resource("aws_vpc", "main") as vpc:
        vpc.cidr_block = "10.0.0.0/16"
        with vpc.block("timeouts") as timeouts:
            timeouts.create = "10m"
    synth.synthesis
    # {"resource": {"aws_vpc": {"main": {"cidr_block": "10.0.0.0/16", ...}}}}
"""

import copy
import json
import logging
import re
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from modules.exceptions import DuplicateResourceError, SynthesisError
from modules.utils.string_utils import is_interpolation

logger = logging.getLogger(__name__)

# Terraform identifiers: resource types, names and block names
IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_-]*$")


def _check_identifier(value: str, kind: str) -> str:
    if not isinstance(value, str) or not value:
        raise SynthesisError(f"{kind} must be a non-empty string", context={kind: value})
    if not IDENTIFIER_PATTERN.match(value):
        raise SynthesisError(f"Invalid {kind}: {value}", context={kind: value})
    return value


def render_value(value: Any) -> Any:
    """Convert a Python value into its Terraform JSON form.

    Resource references become their ``id`` interpolation, attribute structs
    become dicts and ``None`` entries inside mappings are dropped.
    """
    # Local import avoids a cycle with modules.reference
    from modules.reference import ResourceReference

    if isinstance(value, BlockBuilder):
        return value.to_dict()
    if isinstance(value, ResourceReference):
        return value.ref("id")
    if isinstance(value, BaseModel):
        value = value.model_dump()
    if isinstance(value, Mapping):
        return {
            str(key): render_value(item)
            for key, item in value.items()
            if item is not None
        }
    if isinstance(value, (list, tuple)):
        return [render_value(item) for item in value]
    return value


class BlockBuilder:
    """Mutable builder for one Terraform block.

    Attributes are assigned as Python attributes or through ``set``. Nested
    blocks are opened with ``block``; opening the same nested block name more
    than once produces a list of blocks (the Terraform JSON form of repeated
    blocks such as ``ingress`` or ``taint``).
    """

    def __init__(self, label: str = ""):
        object.__setattr__(self, "_label", label)
        object.__setattr__(self, "_body", {})

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        return False

    def __setattr__(self, key: str, value: Any):
        self.set(key, value)

    def __getattr__(self, key: str):
        body = object.__getattribute__(self, "_body")
        if key in body:
            return body[key]
        raise AttributeError(f"{self._label or 'block'} has no attribute '{key}'")

    def __contains__(self, key: str) -> bool:
        return key in self._body

    def set(self, key: str, value: Any) -> "BlockBuilder":
        """Assign an attribute. ``None`` values are skipped."""
        _check_identifier(key, "attribute name")
        if value is None:
            return self
        self._body[key] = value
        return self

    def update(self, attributes: Optional[Mapping]) -> "BlockBuilder":
        """Assign every non-None entry of a mapping."""
        for key, value in (attributes or {}).items():
            self.set(key, value)
        return self

    def block(self, name: str, attributes: Optional[Mapping] = None) -> "BlockBuilder":
        """Open a nested block.

        Args:
            name: Nested block name (e.g. ``canary_settings``)
            attributes: Optional mapping assigned to the new block

        Returns:
            Builder for the nested block, usable as a context manager
        """
        _check_identifier(name, "block name")
        if attributes is not None and not isinstance(attributes, (Mapping, BaseModel)):
            raise SynthesisError(
                f"Nested block '{name}' requires a mapping",
                context={"block": name, "value_type": type(attributes).__name__},
            )
        nested = BlockBuilder(f"{self._label}.{name}" if self._label else name)
        if isinstance(attributes, BaseModel):
            attributes = attributes.model_dump()
        nested.update(attributes)

        existing = self._body.get(name)
        if existing is None:
            self._body[name] = nested
        elif isinstance(existing, list):
            existing.append(nested)
        else:
            self._body[name] = [existing, nested]
        return nested

    def to_dict(self) -> Dict[str, Any]:
        return {key: render_value(value) for key, value in self._body.items()}

    def __repr__(self) -> str:
        return f"BlockBuilder({self._label!r}, {self._body!r})"


class TerraformSynthesizer:
    """Collects Terraform blocks and renders the JSON configuration tree."""

    def __init__(self, default_tags: Optional[Dict[str, str]] = None):
        self._resources: Dict[str, Dict[str, BlockBuilder]] = {}
        self._data: Dict[str, Dict[str, BlockBuilder]] = {}
        self._providers: Dict[str, List[BlockBuilder]] = {}
        self._variables: Dict[str, BlockBuilder] = {}
        self._outputs: Dict[str, BlockBuilder] = {}
        self._locals = BlockBuilder("locals")
        self._terraform = BlockBuilder("terraform")
        self._references = {}
        self.default_tags = dict(default_tags or {})

    def _declare(self, section: Dict, kind: str, resource_type: str, name: str):
        _check_identifier(resource_type, f"{kind} type")
        _check_identifier(name, f"{kind} name")
        by_name = section.setdefault(resource_type, {})
        if name in by_name:
            raise DuplicateResourceError(
                f"Duplicate {kind} {resource_type}.{name}",
                context={"type": resource_type, "name": name},
            )
        builder = BlockBuilder(f"{resource_type}.{name}")
        by_name[name] = builder
        logger.debug("Declared %s %s.%s", kind, resource_type, name)
        return builder

    def resource(
        self, resource_type: str, name: str, attributes: Optional[Mapping] = None
    ) -> BlockBuilder:
        """Declare a managed resource block.

        Args:
            resource_type: Terraform resource type (e.g. ``aws_vpc``)
            name: Resource name, unique per type
            attributes: Optional mapping recorded directly into the block

        Returns:
            BlockBuilder for the resource body (also a context manager)

        Raises:
            DuplicateResourceError: If ``resource_type.name`` already exists
            SynthesisError: If the type or name is not a valid identifier
        """
        builder = self._declare(self._resources, "resource", resource_type, name)
        return builder.update(attributes)

    def data(
        self, data_type: str, name: str, attributes: Optional[Mapping] = None
    ) -> BlockBuilder:
        """Declare a data source block."""
        builder = self._declare(self._data, "data source", data_type, name)
        return builder.update(attributes)

    def provider(self, name: str, attributes: Optional[Mapping] = None) -> BlockBuilder:
        """Declare a provider block. Repeated names (aliases) become a list."""
        _check_identifier(name, "provider name")
        builder = BlockBuilder(f"provider.{name}")
        self._providers.setdefault(name, []).append(builder)
        return builder.update(attributes)

    def variable(self, name: str, attributes: Optional[Mapping] = None) -> BlockBuilder:
        _check_identifier(name, "variable name")
        builder = self._variables.setdefault(name, BlockBuilder(f"variable.{name}"))
        return builder.update(attributes)

    def output(self, name: str, attributes: Optional[Mapping] = None) -> BlockBuilder:
        _check_identifier(name, "output name")
        builder = self._outputs.setdefault(name, BlockBuilder(f"output.{name}"))
        return builder.update(attributes)

    def locals(self, attributes: Optional[Mapping] = None) -> BlockBuilder:
        return self._locals.update(attributes)

    def terraform(self, attributes: Optional[Mapping] = None) -> BlockBuilder:
        return self._terraform.update(attributes)

    def register_reference(self, reference):
        """Remember a reference returned by a resource function and return it."""
        self._references[reference.address] = reference
        return reference

    @property
    def references(self) -> List:
        return list(self._references.values())

    def reference(self, address: str):
        """Look up a registered reference by ``type.name`` address."""
        try:
            return self._references[address]
        except KeyError:
            raise KeyError(f"No reference registered for {address}") from None

    def resource_addresses(self) -> List[str]:
        return [
            f"{resource_type}.{name}"
            for resource_type, by_name in self._resources.items()
            for name in by_name
        ]

    def _render_resource(self, builder: BlockBuilder) -> Dict[str, Any]:
        body = builder.to_dict()
        # Only resources that emit a tags attribute accept default tags
        if "tags" not in body:
            return body
        tags = body["tags"]
        if is_interpolation(tags):
            if self.default_tags:
                expression = tags.strip()[2:-1].strip()
                defaults = json.dumps(self.default_tags, sort_keys=True)
                body["tags"] = "${merge(" + defaults + ", " + expression + ")}"
        elif isinstance(tags, Mapping) or tags is None:
            tags = {**self.default_tags, **(tags or {})}
            if tags:
                body["tags"] = tags
            else:
                del body["tags"]
        return body

    @property
    def synthesis(self) -> Dict[str, Any]:
        """Rendered Terraform JSON tree; empty sections are omitted."""
        tree: Dict[str, Any] = {}
        if self._terraform._body:
            tree["terraform"] = self._terraform.to_dict()
        if self._providers:
            tree["provider"] = {
                name: builders[0].to_dict()
                if len(builders) == 1
                else [builder.to_dict() for builder in builders]
                for name, builders in self._providers.items()
            }
        if self._variables:
            tree["variable"] = {
                name: builder.to_dict() for name, builder in self._variables.items()
            }
        if self._locals._body:
            tree["locals"] = self._locals.to_dict()
        if self._data:
            tree["data"] = {
                data_type: {name: builder.to_dict() for name, builder in by_name.items()}
                for data_type, by_name in self._data.items()
            }
        if self._resources:
            tree["resource"] = {
                resource_type: {
                    name: self._render_resource(builder)
                    for name, builder in by_name.items()
                }
                for resource_type, by_name in self._resources.items()
            }
        if self._outputs:
            tree["output"] = {
                name: builder.to_dict() for name, builder in self._outputs.items()
            }
        return copy.deepcopy(tree)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.synthesis, indent=indent, sort_keys=True)
