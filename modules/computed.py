"""Computed attribute views over resource references.

Each view reads the validated ``resource_attributes`` of a reference and
derives convenience values without touching the synthesizer.
"""

import ipaddress
from typing import Optional

RFC1918_NETWORKS = [
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
]

# AWS reserves the first four addresses and the last address of every subnet
AWS_RESERVED_ADDRESSES = 5


def _network(cidr: Optional[str]) -> Optional[ipaddress.IPv4Network]:
    if not cidr or "${" in cidr:
        return None
    try:
        return ipaddress.IPv4Network(cidr, strict=False)
    except ValueError:
        return None


class ComputedAttributes:
    """Base view holding the reference it reads from."""

    def __init__(self, reference):
        self.reference = reference

    @property
    def attributes(self):
        return self.reference.resource_attributes

    def to_dict(self):
        """Every computed property of the view by name."""
        names = sorted(
            name
            for klass in type(self).__mro__
            for name, member in vars(klass).items()
            if isinstance(member, property) and name != "attributes"
        )
        return {name: getattr(self, name) for name in names}


class VpcComputedAttributes(ComputedAttributes):
    @property
    def is_private_cidr(self) -> bool:
        """True when the VPC range lies inside an RFC1918 block."""
        network = _network(self.attributes.get("cidr_block"))
        if network is None:
            return False
        return any(network.subnet_of(private) for private in RFC1918_NETWORKS)

    @property
    def estimated_subnet_capacity(self) -> int:
        """Number of /24 subnets that fit in the VPC range."""
        network = _network(self.attributes.get("cidr_block"))
        if network is None or network.prefixlen > 24:
            return 0
        return 2 ** (24 - network.prefixlen)


class SubnetComputedAttributes(ComputedAttributes):
    @property
    def is_public(self) -> bool:
        return self.attributes.get("map_public_ip_on_launch") is True

    @property
    def is_private(self) -> bool:
        return not self.is_public

    @property
    def subnet_type(self) -> str:
        return "public" if self.is_public else "private"

    @property
    def ip_capacity(self) -> int:
        """Usable addresses after the AWS-reserved ones."""
        network = _network(self.attributes.get("cidr_block"))
        if network is None:
            return 0
        return max(network.num_addresses - AWS_RESERVED_ADDRESSES, 0)


class InstanceComputedAttributes(ComputedAttributes):
    @property
    def will_have_public_ip(self) -> bool:
        """Explicit associate_public_ip_address wins, else guess from the subnet id."""
        explicit = self.attributes.get("associate_public_ip_address")
        if explicit is not None:
            return bool(explicit)
        subnet_id = self.attributes.get("subnet_id") or ""
        return "public" in subnet_id

    def _instance_type_part(self, index: int) -> Optional[str]:
        instance_type = self.attributes.get("instance_type")
        if not instance_type or "." not in instance_type:
            return None
        return instance_type.split(".", 1)[index]

    @property
    def compute_family(self) -> Optional[str]:
        return self._instance_type_part(0)

    @property
    def compute_size(self) -> Optional[str]:
        return self._instance_type_part(1)


COMPUTED_VIEWS = {
    "aws_vpc": VpcComputedAttributes,
    "aws_subnet": SubnetComputedAttributes,
    "aws_instance": InstanceComputedAttributes,
}


def computed_attributes_for(reference) -> Optional[ComputedAttributes]:
    """Return the computed view for a reference's type, or None."""
    view = COMPUTED_VIEWS.get(reference.type)
    return view(reference) if view else None
