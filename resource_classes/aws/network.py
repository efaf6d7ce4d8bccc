"""
Networking resources: VPCs, subnets, gateways, routing, security groups,
load balancer target groups and Route 53 records.
"""

import ipaddress
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from modules.attributes import BaseAttributes
from modules.registry import register_resource
from modules.types import (
    AvailabilityZone,
    AwsTags,
    CidrBlock,
    Port,
    SubnetCidrBlock,
    VpcCidrBlock,
    validate_cidr,
)
from modules.utils.string_utils import contains_interpolation

from . import make_reference

HTTP_PROTOCOLS = ("HTTP", "HTTPS")
NETWORK_PROTOCOLS = ("TCP", "TLS", "UDP", "TCP_UDP")
SECURITY_GROUP_PROTOCOLS = ("tcp", "udp", "icmp", "icmpv6", "-1")


class VpcAttributes(BaseAttributes):
    resource_type = "aws_vpc"

    cidr_block: VpcCidrBlock
    enable_dns_hostnames: bool = True
    enable_dns_support: bool = True
    instance_tenancy: Literal["default", "dedicated", "host"] = "default"
    tags: AwsTags = Field(default_factory=dict)


@register_resource("network")
def aws_vpc(synth, name, attributes=None):
    """Declare an aws_vpc.

    Computed: ``is_private_cidr``, ``estimated_subnet_capacity``.
    """
    attrs = VpcAttributes.build(attributes)
    with synth.resource("aws_vpc", name) as vpc:
        vpc.cidr_block = attrs.cidr_block
        vpc.enable_dns_hostnames = attrs.enable_dns_hostnames
        vpc.enable_dns_support = attrs.enable_dns_support
        vpc.instance_tenancy = attrs.instance_tenancy
        vpc.tags = attrs.tags
    return make_reference(
        synth,
        "aws_vpc",
        name,
        attrs,
        [
            "id",
            "arn",
            "cidr_block",
            "default_security_group_id",
            "default_route_table_id",
            "default_network_acl_id",
            "main_route_table_id",
            "owner_id",
        ],
    )


class SubnetAttributes(BaseAttributes):
    resource_type = "aws_subnet"

    vpc_id: str
    cidr_block: SubnetCidrBlock
    availability_zone: AvailabilityZone
    map_public_ip_on_launch: bool = False
    tags: AwsTags = Field(default_factory=dict)


@register_resource("network")
def aws_subnet(synth, name, attributes=None):
    """Declare an aws_subnet.

    Computed: ``is_public``, ``is_private``, ``subnet_type``, ``ip_capacity``.
    """
    attrs = SubnetAttributes.build(attributes)
    with synth.resource("aws_subnet", name) as subnet:
        subnet.vpc_id = attrs.vpc_id
        subnet.cidr_block = attrs.cidr_block
        subnet.availability_zone = attrs.availability_zone
        subnet.map_public_ip_on_launch = attrs.map_public_ip_on_launch
        subnet.tags = attrs.tags
    return make_reference(
        synth,
        "aws_subnet",
        name,
        attrs,
        [
            "id",
            "arn",
            "availability_zone",
            "availability_zone_id",
            "cidr_block",
            "vpc_id",
            "owner_id",
        ],
    )


class InternetGatewayAttributes(BaseAttributes):
    resource_type = "aws_internet_gateway"

    vpc_id: Optional[str] = None
    tags: AwsTags = Field(default_factory=dict)


@register_resource("network")
def aws_internet_gateway(synth, name, attributes=None):
    attrs = InternetGatewayAttributes.build(attributes)
    with synth.resource("aws_internet_gateway", name) as igw:
        igw.vpc_id = attrs.vpc_id
        igw.tags = attrs.tags
    return make_reference(
        synth,
        "aws_internet_gateway",
        name,
        attrs,
        ["id", "arn", "owner_id", "vpc_id"],
        computed={"attached": attrs.vpc_id is not None},
    )


class NatGatewayAttributes(BaseAttributes):
    resource_type = "aws_nat_gateway"

    subnet_id: str
    allocation_id: Optional[str] = None
    connectivity_type: Literal["public", "private"] = "public"
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_allocation(self):
        if self.allocation_id and self.connectivity_type == "private":
            raise ValueError("allocation_id can only be used with public NAT gateways")
        return self


@register_resource("network")
def aws_nat_gateway(synth, name, attributes=None):
    """Declare an aws_nat_gateway.

    Public gateways without an ``allocation_id`` need an Elastic IP, reported
    as the ``requires_elastic_ip`` computed value.
    """
    attrs = NatGatewayAttributes.build(attributes)
    with synth.resource("aws_nat_gateway", name) as nat:
        nat.allocation_id = attrs.allocation_id
        nat.subnet_id = attrs.subnet_id
        nat.connectivity_type = attrs.connectivity_type
        nat.tags = attrs.tags
    public = attrs.connectivity_type == "public"
    return make_reference(
        synth,
        "aws_nat_gateway",
        name,
        attrs,
        [
            "id",
            "allocation_id",
            "subnet_id",
            "network_interface_id",
            "private_ip",
            "public_ip",
        ],
        computed={
            "is_public": public,
            "is_private": not public,
            "requires_elastic_ip": public and attrs.allocation_id is None,
        },
    )


ROUTE_TARGETS = (
    "gateway_id",
    "nat_gateway_id",
    "network_interface_id",
    "transit_gateway_id",
    "vpc_peering_connection_id",
    "vpc_endpoint_id",
    "egress_only_gateway_id",
    "carrier_gateway_id",
    "local_gateway_id",
)


class RouteAttributes(BaseAttributes):
    cidr_block: Optional[CidrBlock] = None
    ipv6_cidr_block: Optional[str] = None
    gateway_id: Optional[str] = None
    nat_gateway_id: Optional[str] = None
    network_interface_id: Optional[str] = None
    transit_gateway_id: Optional[str] = None
    vpc_peering_connection_id: Optional[str] = None
    vpc_endpoint_id: Optional[str] = None
    egress_only_gateway_id: Optional[str] = None
    carrier_gateway_id: Optional[str] = None
    local_gateway_id: Optional[str] = None

    @model_validator(mode="after")
    def check_destination_and_target(self):
        if not self.cidr_block and not self.ipv6_cidr_block:
            raise ValueError("Route must have either cidr_block or ipv6_cidr_block")
        targets = [target for target in ROUTE_TARGETS if getattr(self, target)]
        if not targets:
            raise ValueError(
                f"Route must specify exactly one target ({', '.join(ROUTE_TARGETS)})"
            )
        if len(targets) > 1:
            raise ValueError(
                "Route can only have one target, but multiple were specified: "
                + ", ".join(targets)
            )
        return self


class RouteTableAttributes(BaseAttributes):
    resource_type = "aws_route_table"

    vpc_id: str
    routes: List[RouteAttributes] = Field(default_factory=list)
    propagating_vgws: List[str] = Field(default_factory=list)
    tags: AwsTags = Field(default_factory=dict)

    @property
    def route_count(self) -> int:
        return len(self.routes)

    @property
    def has_internet_route(self) -> bool:
        return any(
            route.gateway_id
            and (route.cidr_block == "0.0.0.0/0" or route.ipv6_cidr_block == "::/0")
            for route in self.routes
        )

    @property
    def has_nat_route(self) -> bool:
        return any(route.nat_gateway_id for route in self.routes)


@register_resource("network")
def aws_route_table(synth, name, attributes=None):
    """Declare an aws_route_table with one ``route`` block per route."""
    attrs = RouteTableAttributes.build(attributes)
    with synth.resource("aws_route_table", name) as table:
        table.vpc_id = attrs.vpc_id
        for route in attrs.routes:
            table.block("route", route.compact_dict())
        if attrs.propagating_vgws:
            table.propagating_vgws = attrs.propagating_vgws
        table.tags = attrs.tags
    return make_reference(
        synth,
        "aws_route_table",
        name,
        attrs,
        ["id", "arn", "owner_id"],
        paths={"route_table_id": "id"},
        computed={
            "route_count": attrs.route_count,
            "has_internet_route": attrs.has_internet_route,
            "has_nat_route": attrs.has_nat_route,
        },
    )


class SecurityGroupRule(BaseAttributes):
    from_port: int = Field(ge=-1, le=65535)
    to_port: int = Field(ge=-1, le=65535)
    protocol: str
    cidr_blocks: List[str] = Field(default_factory=list)
    ipv6_cidr_blocks: List[str] = Field(default_factory=list)
    security_groups: List[str] = Field(default_factory=list)
    description: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def check_required(cls, data: Any) -> Any:
        if isinstance(data, dict):
            missing = [
                key for key in ("from_port", "to_port", "protocol") if key not in data
            ]
            if missing:
                raise ValueError(
                    f"Security group rule missing required fields: {', '.join(missing)}"
                )
        return data

    @field_validator("protocol")
    @classmethod
    def check_protocol(cls, value: str) -> str:
        if value not in SECURITY_GROUP_PROTOCOLS:
            raise ValueError(
                f"Security group rule protocol '{value}' is not valid "
                f"(expected one of {', '.join(SECURITY_GROUP_PROTOCOLS)})"
            )
        return value

    @field_validator("cidr_blocks")
    @classmethod
    def check_cidr_blocks(cls, value: List[str]) -> List[str]:
        for cidr in value:
            validate_cidr(cidr)
        return value

    @model_validator(mode="after")
    def check_port_range(self):
        if self.from_port > self.to_port:
            raise ValueError(
                f"Security group rule from_port ({self.from_port}) cannot be greater "
                f"than to_port ({self.to_port})"
            )
        return self


class SecurityGroupAttributes(BaseAttributes):
    resource_type = "aws_security_group"

    name: Optional[str] = None
    name_prefix: Optional[str] = None
    vpc_id: Optional[str] = None
    description: Optional[str] = None
    ingress_rules: List[SecurityGroupRule] = Field(default_factory=list)
    egress_rules: List[SecurityGroupRule] = Field(default_factory=list)
    revoke_rules_on_delete: Optional[bool] = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_name(self):
        if self.name and self.name_prefix:
            raise ValueError("Cannot specify both 'name' and 'name_prefix'")
        return self


def _security_group_rule(block, rule: SecurityGroupRule):
    block.from_port = rule.from_port
    block.to_port = rule.to_port
    block.protocol = rule.protocol
    block.cidr_blocks = rule.cidr_blocks
    if rule.ipv6_cidr_blocks:
        block.ipv6_cidr_blocks = rule.ipv6_cidr_blocks
    block.security_groups = rule.security_groups
    block.description = rule.description


@register_resource("network")
def aws_security_group(synth, name, attributes=None):
    """Declare an aws_security_group with inline ``ingress``/``egress`` rules."""
    attrs = SecurityGroupAttributes.build(attributes)
    with synth.resource("aws_security_group", name) as group:
        group.name = attrs.name
        group.name_prefix = attrs.name_prefix
        group.vpc_id = attrs.vpc_id
        group.description = attrs.description
        for rule in attrs.ingress_rules:
            with group.block("ingress") as ingress:
                _security_group_rule(ingress, rule)
        for rule in attrs.egress_rules:
            with group.block("egress") as egress:
                _security_group_rule(egress, rule)
        group.revoke_rules_on_delete = attrs.revoke_rules_on_delete
        group.tags = attrs.tags
    return make_reference(
        synth,
        "aws_security_group",
        name,
        attrs,
        ["id", "arn", "vpc_id", "owner_id", "name"],
        computed={
            "ingress_rule_count": len(attrs.ingress_rules),
            "egress_rule_count": len(attrs.egress_rules),
            "allows_public_ingress": any(
                "0.0.0.0/0" in rule.cidr_blocks for rule in attrs.ingress_rules
            ),
        },
    )


class TargetGroupHealthCheck(BaseAttributes):
    enabled: bool = True
    interval: int = Field(default=30, ge=5, le=300)
    path: str = "/"
    port: str = "traffic-port"
    protocol: Literal[
        "HTTP", "HTTPS", "TCP", "TLS", "UDP", "TCP_UDP", "GENEVE"
    ] = "HTTP"
    timeout: int = Field(default=5, ge=2, le=120)
    healthy_threshold: int = Field(default=5, ge=2, le=10)
    unhealthy_threshold: int = Field(default=2, ge=2, le=10)
    matcher: str = "200"

    @model_validator(mode="after")
    def check_timeout(self):
        if self.timeout >= self.interval:
            raise ValueError(
                f"Health check timeout ({self.timeout}) must be less than "
                f"interval ({self.interval})"
            )
        return self


class TargetGroupStickiness(BaseAttributes):
    enabled: bool = False
    type: Literal["lb_cookie", "app_cookie"] = "lb_cookie"
    duration: int = Field(default=86400, ge=1, le=604800)
    cookie_name: Optional[str] = None

    @model_validator(mode="after")
    def check_cookie_name(self):
        if self.type == "app_cookie" and not self.cookie_name:
            raise ValueError(
                "cookie_name is required when stickiness type is 'app_cookie'"
            )
        return self

    def block_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"enabled": self.enabled, "type": self.type}
        if self.type == "lb_cookie":
            body["duration"] = self.duration
        if self.cookie_name:
            body["cookie_name"] = self.cookie_name
        return body


class TargetGroupAttributes(BaseAttributes):
    resource_type = "aws_lb_target_group"

    port: Port
    protocol: Literal["HTTP", "HTTPS", "TCP", "TLS", "UDP", "TCP_UDP", "GENEVE"]
    vpc_id: str
    name: Optional[str] = None
    name_prefix: Optional[str] = None
    target_type: Literal["instance", "ip", "lambda", "alb"] = "instance"
    deregistration_delay: int = Field(default=300, ge=0, le=3600)
    slow_start: int = Field(default=0, ge=0, le=900)
    proxy_protocol_v2: bool = False
    preserve_client_ip: Optional[bool] = None
    ip_address_type: Literal["ipv4", "ipv6"] = "ipv4"
    protocol_version: Optional[Literal["HTTP1", "HTTP2", "GRPC"]] = None
    health_check: Optional[TargetGroupHealthCheck] = None
    stickiness: Optional[TargetGroupStickiness] = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_protocol_rules(self):
        if self.name and self.name_prefix:
            raise ValueError("Cannot specify both 'name' and 'name_prefix'")
        if self.protocol == "GENEVE" and self.port != 6081:
            raise ValueError("GENEVE protocol requires port 6081")
        if self.protocol_version and self.protocol not in HTTP_PROTOCOLS:
            raise ValueError(
                "protocol_version can only be set for HTTP/HTTPS protocols"
            )
        if self.stickiness and self.stickiness.enabled and not self.supports_stickiness:
            raise ValueError(
                "Stickiness can only be enabled for HTTP/HTTPS target groups"
            )
        if (
            self.health_check
            and self.health_check.path != "/"
            and not self.supports_health_check_path
        ):
            raise ValueError(
                "Health check path can only be set for HTTP/HTTPS target groups"
            )
        return self

    @property
    def supports_stickiness(self) -> bool:
        return self.protocol in HTTP_PROTOCOLS

    @property
    def supports_health_check_path(self) -> bool:
        return self.protocol in HTTP_PROTOCOLS

    @property
    def is_network_load_balancer(self) -> bool:
        return self.protocol in NETWORK_PROTOCOLS


@register_resource("network")
def aws_lb_target_group(synth, name, attributes=None):
    """Declare an aws_lb_target_group.

    Defaults that match the provider's own (``slow_start`` 0,
    ``proxy_protocol_v2`` false) are left out of the block.
    """
    attrs = TargetGroupAttributes.build(attributes)
    with synth.resource("aws_lb_target_group", name) as group:
        group.name = attrs.name
        group.name_prefix = attrs.name_prefix
        group.port = attrs.port
        group.protocol = attrs.protocol
        group.vpc_id = attrs.vpc_id
        group.target_type = attrs.target_type
        group.deregistration_delay = attrs.deregistration_delay
        if attrs.slow_start > 0:
            group.slow_start = attrs.slow_start
        if attrs.proxy_protocol_v2:
            group.proxy_protocol_v2 = True
        group.preserve_client_ip = attrs.preserve_client_ip
        group.ip_address_type = attrs.ip_address_type
        group.protocol_version = attrs.protocol_version
        if attrs.health_check:
            health_check = attrs.health_check.to_dict()
            if not attrs.supports_health_check_path:
                # Path and matcher are rejected for non-HTTP health checks
                health_check.pop("path")
                health_check.pop("matcher")
            group.block("health_check", health_check)
        if attrs.stickiness:
            group.block("stickiness", attrs.stickiness.block_dict())
        group.tags = attrs.tags
    return make_reference(
        synth,
        "aws_lb_target_group",
        name,
        attrs,
        [
            "id",
            "arn",
            "arn_suffix",
            "name",
            "port",
            "protocol",
            "vpc_id",
            "target_type",
            "health_check",
            "stickiness",
        ],
        computed={
            "supports_stickiness": attrs.supports_stickiness,
            "supports_health_check_path": attrs.supports_health_check_path,
            "is_network_load_balancer": attrs.is_network_load_balancer,
        },
    )


RECORD_NAME_PATTERN = re.compile(
    r"^(\*\.)?([a-zA-Z0-9_]([a-zA-Z0-9_-]{0,61}[a-zA-Z0-9_])?\.)*"
    r"[a-zA-Z0-9_]([a-zA-Z0-9_-]{0,61}[a-zA-Z0-9_])?\.?$"
)
ROUTING_POLICIES = (
    "weighted_routing_policy",
    "latency_routing_policy",
    "failover_routing_policy",
    "geolocation_routing_policy",
    "geoproximity_routing_policy",
)


class WeightedRoutingPolicy(BaseAttributes):
    weight: int = Field(ge=0, le=255)


class LatencyRoutingPolicy(BaseAttributes):
    region: str


class FailoverRoutingPolicy(BaseAttributes):
    type: Literal["PRIMARY", "SECONDARY"]


class GeolocationRoutingPolicy(BaseAttributes):
    continent: Optional[str] = None
    country: Optional[str] = None
    subdivision: Optional[str] = None


class Coordinates(BaseAttributes):
    latitude: str
    longitude: str


class GeoproximityRoutingPolicy(BaseAttributes):
    aws_region: Optional[str] = None
    bias: Optional[int] = Field(default=None, ge=-99, le=99)
    coordinates: Optional[Coordinates] = None


class RecordAlias(BaseAttributes):
    name: str
    zone_id: str
    evaluate_target_health: bool = False


class Route53RecordAttributes(BaseAttributes):
    resource_type = "aws_route53_record"

    zone_id: str
    name: str
    type: Literal["A", "AAAA", "CNAME", "MX", "NS", "PTR", "SOA", "SPF", "SRV", "TXT"]
    ttl: Optional[int] = Field(default=None, ge=0, le=2147483647)
    records: List[str] = Field(default_factory=list)
    set_identifier: Optional[str] = None
    health_check_id: Optional[str] = None
    multivalue_answer: bool = False
    allow_overwrite: bool = False
    weighted_routing_policy: Optional[WeightedRoutingPolicy] = None
    latency_routing_policy: Optional[LatencyRoutingPolicy] = None
    failover_routing_policy: Optional[FailoverRoutingPolicy] = None
    geolocation_routing_policy: Optional[GeolocationRoutingPolicy] = None
    geoproximity_routing_policy: Optional[GeoproximityRoutingPolicy] = None
    alias: Optional[RecordAlias] = None

    @model_validator(mode="after")
    def check_record(self):
        if not contains_interpolation(self.zone_id) and not re.match(
            r"^[A-Z0-9]+$", self.zone_id
        ):
            raise ValueError(f"Invalid hosted zone ID format: {self.zone_id}")
        if not contains_interpolation(self.name) and not RECORD_NAME_PATTERN.match(
            self.name
        ):
            raise ValueError(f"Invalid DNS record name format: {self.name}")

        if self.alias and (self.ttl is not None or self.records):
            raise ValueError("Alias records cannot have TTL or records values")
        if not self.alias:
            if not self.records:
                raise ValueError(
                    "Non-alias records must have at least one record value"
                )
            if self.ttl is None:
                raise ValueError("Non-alias records must have a TTL value")
            self._check_record_values()

        policies = self.routing_policies
        if len(policies) > 1:
            raise ValueError("Only one routing policy can be specified per record")
        if policies and not self.multivalue_answer and not self.set_identifier:
            raise ValueError("set_identifier is required when using routing policies")

        if (
            self.health_check_id
            and not contains_interpolation(self.health_check_id)
            and not re.match(r"^[a-z0-9-]+$", self.health_check_id)
        ):
            raise ValueError(f"Invalid health check ID format: {self.health_check_id}")
        return self

    def _check_record_values(self):
        literal = [
            record for record in self.records if not contains_interpolation(record)
        ]
        if self.type in ("A", "AAAA"):
            version = 4 if self.type == "A" else 6
            for record in literal:
                try:
                    address = ipaddress.ip_address(record)
                except ValueError:
                    address = None
                if address is None or address.version != version:
                    raise ValueError(
                        f"{self.type} record value must be an "
                        f"IPv{version} address: {record}"
                    )
        elif self.type == "CNAME" and len(self.records) != 1:
            raise ValueError("CNAME records must have exactly one record value")
        elif self.type == "MX":
            for record in literal:
                if not re.match(r"^\d+\s+\S+$", record):
                    raise ValueError(
                        f"MX record value must be '<priority> <mail server>': {record}"
                    )

    @property
    def routing_policies(self) -> List[str]:
        return [policy for policy in ROUTING_POLICIES if getattr(self, policy)]

    @property
    def routing_policy_type(self) -> Optional[str]:
        policies = self.routing_policies
        if not policies:
            return None
        return policies[0].replace("_routing_policy", "")

    @property
    def is_wildcard_record(self) -> bool:
        return self.name.startswith("*.")

    @property
    def domain_name(self) -> str:
        name = self.name[2:] if self.is_wildcard_record else self.name
        return name.rstrip(".")


@register_resource("network")
def aws_route53_record(synth, name, attributes=None):
    """Declare an aws_route53_record.

    Alias records carry an ``alias`` block instead of ``ttl``/``records``.
    Routing policies are mutually exclusive and need a ``set_identifier``.
    """
    attrs = Route53RecordAttributes.build(attributes)
    with synth.resource("aws_route53_record", name) as record:
        record.zone_id = attrs.zone_id
        record.name = attrs.name
        record.type = attrs.type
        if attrs.alias is None:
            record.ttl = attrs.ttl
            record.records = attrs.records
        else:
            record.block("alias", attrs.alias.to_dict())
        for policy in attrs.routing_policies:
            record.block(policy, getattr(attrs, policy).compact_dict())
        record.set_identifier = attrs.set_identifier
        record.health_check_id = attrs.health_check_id
        if attrs.multivalue_answer:
            record.multivalue_answer = True
        if attrs.allow_overwrite:
            record.allow_overwrite = True
    return make_reference(
        synth,
        "aws_route53_record",
        name,
        attrs,
        ["id", "name", "fqdn", "type", "zone_id", "records", "ttl"],
        computed={
            "is_alias_record": attrs.alias is not None,
            "is_simple_record": attrs.alias is None and not attrs.routing_policies,
            "routing_policy_type": attrs.routing_policy_type,
            "has_routing_policy": bool(attrs.routing_policies),
            "is_wildcard_record": attrs.is_wildcard_record,
            "record_count": len(attrs.records),
            "domain_name": attrs.domain_name,
        },
    )
