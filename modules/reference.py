"""Resource references returned by resource functions.

A ``ResourceReference`` pairs the Terraform interpolation strings of a
resource's outputs (``${aws_vpc.main.id}``) with convenience values computed
from its validated attributes when the reference is created.
"""

from typing import Any, Dict, Iterable, Mapping, Optional

from modules.utils.string_utils import interpolation


def build_outputs(
    resource_type: str,
    name: str,
    attributes: Iterable[str],
    paths: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Build the output interpolation map for a resource.

    Args:
        resource_type: Terraform resource type
        name: Resource name
        attributes: Output names whose attribute path equals the name
        paths: Output names mapped to a different attribute path, e.g.
            ``{"console_url": "instances.0.console_url"}``

    Returns:
        dict of output name to interpolation string
    """
    outputs = {attr: interpolation(resource_type, name, attr) for attr in attributes}
    for output_name, path in (paths or {}).items():
        outputs[output_name] = interpolation(resource_type, name, path)
    return outputs


class ResourceReference:
    """Handle for a declared resource.

    Attribute access resolves computed values first, then outputs:

        ref = aws_vpc(synth, "main", {"cidr_block": "10.0.0.0/16"})
        ref.id                  # "${aws_vpc.main.id}"
        ref.is_private_cidr     # True (computed)
        ref.ref("owner_id")     # "${aws_vpc.main.owner_id}"

    ``type`` and ``name`` are the resource's own type and name; an output
    with one of those names is available through ``ref["name"]``.
    """

    def __init__(
        self,
        type: str,
        name: str,
        resource_attributes: Optional[Mapping[str, Any]] = None,
        outputs: Optional[Mapping[str, str]] = None,
        computed: Optional[Mapping[str, Any]] = None,
    ):
        object.__setattr__(self, "type", type)
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "resource_attributes", dict(resource_attributes or {}))
        object.__setattr__(self, "outputs", dict(outputs or {}))
        object.__setattr__(self, "computed", dict(computed or {}))

    def __setattr__(self, key, value):
        raise AttributeError(f"ResourceReference {self.address} is immutable")

    def __delattr__(self, key):
        raise AttributeError(f"ResourceReference {self.address} is immutable")

    def __getattr__(self, key: str):
        # Only reached when normal lookup fails
        if key.startswith("__"):
            raise AttributeError(key)
        computed = object.__getattribute__(self, "computed")
        if key in computed:
            return computed[key]
        outputs = object.__getattribute__(self, "outputs")
        if key in outputs:
            return outputs[key]
        raise AttributeError(
            f"{object.__getattribute__(self, 'type')} reference has no attribute '{key}'"
        )

    def __getitem__(self, key: str) -> str:
        return self.outputs[key]

    def __eq__(self, other) -> bool:
        if not isinstance(other, ResourceReference):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(self.address)

    def __repr__(self) -> str:
        return f"ResourceReference({self.address})"

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"

    def ref(self, attribute: str) -> str:
        """Interpolation for any attribute of the resource, declared or not."""
        return interpolation(self.type, self.name, attribute)

    @property
    def computed_attributes(self):
        """Typed computed view for this resource type, or None."""
        from modules.computed import computed_attributes_for

        return computed_attributes_for(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "attributes": dict(self.resource_attributes),
            "outputs": dict(self.outputs),
            "computed": dict(self.computed),
        }
