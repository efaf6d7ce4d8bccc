"""Composition patterns built from several resource functions.

A composition declares a group of related resources in one call and returns
a composite reference holding the individual ``ResourceReference`` objects.
"""

import ipaddress
import logging
import math
from typing import Any, Dict, List, Optional

from modules.reference import ResourceReference
from resource_classes.aws.compute import (
    aws_autoscaling_attachment,
    aws_autoscaling_group,
    aws_autoscaling_policy,
    aws_launch_template,
)
from resource_classes.aws.management import aws_cloudwatch_metric_alarm
from resource_classes.aws.network import (
    aws_internet_gateway,
    aws_lb_target_group,
    aws_nat_gateway,
    aws_route_table,
    aws_security_group,
    aws_subnet,
    aws_vpc,
)

logger = logging.getLogger(__name__)

DEFAULT_ROUTE = "0.0.0.0/0"

WEB_TIER_DEFAULTS = {
    "instance_type": "t3.micro",
    "ami_id": "ami-0c55b159cbfafe1f0",
    "min_instances": 1,
    "max_instances": 10,
    "desired_instances": 2,
    "key_name": None,
    "user_data": None,
    "health_check_path": "/",
    "scale_up_threshold": 70,
    "scale_down_threshold": 30,
    "tags": {},
}


class CompositeVpcReference:
    """References created by ``vpc_with_subnets``."""

    def __init__(self, name_prefix: str):
        self.name_prefix = name_prefix
        self.vpc = None
        self.internet_gateway = None
        self.public_subnets: List = []
        self.private_subnets: List = []
        self.nat_gateways: List = []
        self.public_route_table = None
        self.private_route_tables: List = []

    def all_resources(self) -> List:
        """Every created reference in declaration order."""
        resources = [self.vpc, self.internet_gateway]
        resources.extend(self.public_subnets)
        resources.extend(self.private_subnets)
        resources.extend(self.nat_gateways)
        resources.append(self.public_route_table)
        resources.extend(self.private_route_tables)
        return [resource for resource in resources if resource is not None]

    @property
    def public_subnet_ids(self) -> List[str]:
        return [subnet.id for subnet in self.public_subnets]

    @property
    def private_subnet_ids(self) -> List[str]:
        return [subnet.id for subnet in self.private_subnets]

    def __repr__(self) -> str:
        count = len(self.all_resources())
        return f"CompositeVpcReference({self.name_prefix!r}, {count} resources)"


class CompositeAutoScalingReference:
    """References created by ``auto_scaling_web_tier``."""

    def __init__(self, name: str):
        self.name = name
        self.security_group = None
        self.launch_template = None
        self.target_group = None
        self.auto_scaling_group = None
        self.asg_attachment = None
        self.scale_up_policy = None
        self.scale_down_policy = None
        self.cpu_high_alarm = None
        self.cpu_low_alarm = None

    def all_resources(self) -> List:
        """Every created reference in declaration order."""
        resources = [
            self.security_group,
            self.launch_template,
            self.target_group,
            self.auto_scaling_group,
            self.asg_attachment,
            self.scale_up_policy,
            self.scale_down_policy,
            self.cpu_high_alarm,
            self.cpu_low_alarm,
        ]
        return [resource for resource in resources if resource is not None]

    def __repr__(self) -> str:
        count = len(self.all_resources())
        return f"CompositeAutoScalingReference({self.name!r}, {count} resources)"


def subnet_cidr(vpc_cidr: str, new_prefix: int, index: int) -> str:
    """Return the ``index``-th subnet of size ``new_prefix`` inside ``vpc_cidr``.

    Raises:
        ValueError: If the VPC range has no room for that subnet
    """
    network = ipaddress.IPv4Network(vpc_cidr, strict=False)
    if new_prefix > 32:
        raise ValueError(f"Cannot carve /{new_prefix} subnets from {vpc_cidr}")
    size = 2 ** (32 - new_prefix)
    if (index + 1) * size > network.num_addresses:
        raise ValueError(
            f"Subnet {index} of size /{new_prefix} does not fit in {vpc_cidr}"
        )
    first = int(network.network_address) + index * size
    return f"{ipaddress.IPv4Address(first)}/{new_prefix}"


def _tags(base: Dict[str, str], extra: Optional[Dict[str, str]]) -> Dict[str, str]:
    return {**base, **(extra or {})}


def vpc_with_subnets(
    synth,
    name_prefix: str,
    vpc_cidr: str,
    availability_zones: List[str],
    public_subnet_cidrs: Optional[List[str]] = None,
    private_subnet_cidrs: Optional[List[str]] = None,
    attributes: Optional[Dict[str, Any]] = None,
) -> CompositeVpcReference:
    """Declare a VPC with public and private subnets across availability zones.

    Each AZ gets one public subnet, one private subnet and a NAT gateway in
    the public subnet. The public route table sends the default route to the
    internet gateway; each private route table sends it to its AZ's NAT
    gateway. Subnet CIDRs not passed explicitly are carved from ``vpc_cidr``:
    public subnets take the first slots, private subnets follow.

    Args:
        synth: TerraformSynthesizer receiving the resources
        name_prefix: Prefix for resource names and ``Name`` tags
        vpc_cidr: CIDR block of the VPC
        availability_zones: AZs to spread subnets over
        public_subnet_cidrs: Optional explicit CIDR per AZ
        private_subnet_cidrs: Optional explicit CIDR per AZ
        attributes: Optional extra tags: ``vpc_tags``, ``igw_tags``,
            ``public_subnet_tags``, ``private_subnet_tags``, ``nat_tags``,
            ``route_table_tags``

    Returns:
        CompositeVpcReference with every created reference

    Raises:
        ValueError: If no availability zone is given
    """
    if not availability_zones:
        raise ValueError("At least one availability zone must be specified")
    attributes = attributes or {}
    public_cidrs = public_subnet_cidrs or []
    private_cidrs = private_subnet_cidrs or []
    zone_count = len(availability_zones)

    vpc_prefix = ipaddress.IPv4Network(vpc_cidr, strict=False).prefixlen
    new_prefix = vpc_prefix + math.ceil(math.log2(zone_count * 2))

    results = CompositeVpcReference(name_prefix)
    results.vpc = aws_vpc(
        synth,
        f"{name_prefix}_vpc",
        {
            "cidr_block": vpc_cidr,
            "enable_dns_hostnames": True,
            "enable_dns_support": True,
            "tags": _tags({"Name": f"{name_prefix}-vpc"}, attributes.get("vpc_tags")),
        },
    )
    results.internet_gateway = aws_internet_gateway(
        synth,
        f"{name_prefix}_igw",
        {
            "vpc_id": results.vpc.id,
            "tags": _tags({"Name": f"{name_prefix}-igw"}, attributes.get("igw_tags")),
        },
    )

    for index, zone in enumerate(availability_zones):
        public_cidr = (
            public_cidrs[index]
            if index < len(public_cidrs)
            else subnet_cidr(vpc_cidr, new_prefix, index)
        )
        results.public_subnets.append(
            aws_subnet(
                synth,
                f"{name_prefix}_public_subnet_{index}",
                {
                    "vpc_id": results.vpc.id,
                    "cidr_block": public_cidr,
                    "availability_zone": zone,
                    "map_public_ip_on_launch": True,
                    "tags": _tags(
                        {"Name": f"{name_prefix}-public-{index}", "Type": "public"},
                        attributes.get("public_subnet_tags"),
                    ),
                },
            )
        )
        private_cidr = (
            private_cidrs[index]
            if index < len(private_cidrs)
            else subnet_cidr(vpc_cidr, new_prefix, index + zone_count)
        )
        results.private_subnets.append(
            aws_subnet(
                synth,
                f"{name_prefix}_private_subnet_{index}",
                {
                    "vpc_id": results.vpc.id,
                    "cidr_block": private_cidr,
                    "availability_zone": zone,
                    "map_public_ip_on_launch": False,
                    "tags": _tags(
                        {"Name": f"{name_prefix}-private-{index}", "Type": "private"},
                        attributes.get("private_subnet_tags"),
                    ),
                },
            )
        )

    for index, public_subnet in enumerate(results.public_subnets):
        results.nat_gateways.append(
            aws_nat_gateway(
                synth,
                f"{name_prefix}_nat_{index}",
                {
                    "subnet_id": public_subnet.id,
                    "tags": _tags(
                        {"Name": f"{name_prefix}-nat-{index}"},
                        attributes.get("nat_tags"),
                    ),
                },
            )
        )

    route_table_tags = attributes.get("route_table_tags")
    results.public_route_table = aws_route_table(
        synth,
        f"{name_prefix}_public_rt",
        {
            "vpc_id": results.vpc.id,
            "routes": [
                {"cidr_block": DEFAULT_ROUTE, "gateway_id": results.internet_gateway.id}
            ],
            "tags": _tags({"Name": f"{name_prefix}-public-rt"}, route_table_tags),
        },
    )
    for index, nat_gateway in enumerate(results.nat_gateways):
        results.private_route_tables.append(
            aws_route_table(
                synth,
                f"{name_prefix}_private_rt_{index}",
                {
                    "vpc_id": results.vpc.id,
                    "routes": [
                        {"cidr_block": DEFAULT_ROUTE, "nat_gateway_id": nat_gateway.id}
                    ],
                    "tags": _tags(
                        {"Name": f"{name_prefix}-private-rt-{index}"}, route_table_tags
                    ),
                },
            )
        )

    logger.debug(
        "Composed %s: %d resources across %d availability zones",
        name_prefix,
        len(results.all_resources()),
        zone_count,
    )
    return results


def _ref_id(value):
    return value.id if isinstance(value, ResourceReference) else value


def auto_scaling_web_tier(
    synth,
    name: str,
    vpc_ref,
    subnet_refs: List,
    attributes: Optional[Dict[str, Any]] = None,
) -> CompositeAutoScalingReference:
    """Declare an auto scaling web tier behind a target group.

    Creates a security group open on HTTP and HTTPS, a launch template, a
    target group, the Auto Scaling group attached to it, a pair of simple
    scaling policies and the CPU alarms driving them.

    Args:
        synth: TerraformSynthesizer receiving the resources
        name: Prefix for resource names and ``Name`` tags
        vpc_ref: VPC reference or id
        subnet_refs: Subnet references or ids for the group
        attributes: Optional overrides of ``WEB_TIER_DEFAULTS``

    Returns:
        CompositeAutoScalingReference with every created reference

    Raises:
        ValueError: If no subnet is given or an unknown setting is passed
    """
    if not subnet_refs:
        raise ValueError("At least one subnet must be specified")
    unknown = sorted(set(attributes or {}) - set(WEB_TIER_DEFAULTS))
    if unknown:
        raise ValueError(f"Unknown web tier settings: {', '.join(unknown)}")
    config = {**WEB_TIER_DEFAULTS, **(attributes or {})}
    vpc_id = _ref_id(vpc_ref)
    subnet_ids = [_ref_id(subnet) for subnet in subnet_refs]
    extra_tags = config["tags"]

    results = CompositeAutoScalingReference(name)
    results.security_group = aws_security_group(
        synth,
        f"{name}_sg",
        {
            "name_prefix": f"{name}-sg-",
            "vpc_id": vpc_id,
            "description": f"Security group for {name} auto scaling group",
            "ingress_rules": [
                {
                    "from_port": port,
                    "to_port": port,
                    "protocol": "tcp",
                    "cidr_blocks": [DEFAULT_ROUTE],
                    "description": label,
                }
                for port, label in ((80, "HTTP"), (443, "HTTPS"))
            ],
            "egress_rules": [
                {
                    "from_port": 0,
                    "to_port": 0,
                    "protocol": "-1",
                    "cidr_blocks": [DEFAULT_ROUTE],
                    "description": "All outbound traffic",
                }
            ],
            "tags": _tags({"Name": f"{name}-security-group"}, extra_tags),
        },
    )
    results.launch_template = aws_launch_template(
        synth,
        f"{name}_launch_template",
        {
            "name_prefix": f"{name}-lt-",
            "launch_template_data": {
                "image_id": config["ami_id"],
                "instance_type": config["instance_type"],
                "key_name": config["key_name"],
                "user_data": config["user_data"],
                "vpc_security_group_ids": [results.security_group.id],
            },
            "tags": _tags({"Name": f"{name}-launch-template"}, extra_tags),
        },
    )
    results.target_group = aws_lb_target_group(
        synth,
        f"{name}_target_group",
        {
            "port": 80,
            "protocol": "HTTP",
            "vpc_id": vpc_id,
            "target_type": "instance",
            "health_check": {
                "enabled": True,
                "healthy_threshold": 2,
                "unhealthy_threshold": 2,
                "timeout": 5,
                "interval": 30,
                "path": config["health_check_path"],
                "matcher": "200",
            },
            "tags": _tags({"Name": f"{name}-target-group"}, extra_tags),
        },
    )

    instance_tags = [{"key": "Name", "value": f"{name}-instance"}]
    instance_tags.extend(
        {"key": key, "value": value} for key, value in extra_tags.items()
    )
    results.auto_scaling_group = aws_autoscaling_group(
        synth,
        f"{name}_asg",
        {
            "min_size": config["min_instances"],
            "max_size": config["max_instances"],
            "desired_capacity": config["desired_instances"],
            "vpc_zone_identifier": subnet_ids,
            "launch_template": {
                "id": results.launch_template.id,
                "version": "$Latest",
            },
            "health_check_type": "ELB",
            "health_check_grace_period": 300,
            "tags": instance_tags,
        },
    )
    group_name = results.auto_scaling_group["name"]
    results.asg_attachment = aws_autoscaling_attachment(
        synth,
        f"{name}_asg_attachment",
        {
            "autoscaling_group_name": group_name,
            "lb_target_group_arn": results.target_group.arn,
        },
    )

    for direction, adjustment in (("up", 1), ("down", -1)):
        policy = aws_autoscaling_policy(
            synth,
            f"{name}_scale_{direction}",
            {
                "name": f"{name}-scale-{direction}",
                "autoscaling_group_name": group_name,
                "adjustment_type": "ChangeInCapacity",
                "scaling_adjustment": adjustment,
                "cooldown": 300,
            },
        )
        setattr(results, f"scale_{direction}_policy", policy)

    high, low = config["scale_up_threshold"], config["scale_down_threshold"]
    alarms = (
        (
            "high",
            "GreaterThanThreshold",
            high,
            f"Trigger scale up when CPU exceeds {high}%",
            results.scale_up_policy,
        ),
        (
            "low",
            "LessThanThreshold",
            low,
            f"Trigger scale down when CPU drops below {low}%",
            results.scale_down_policy,
        ),
    )
    for level, operator, threshold, description, policy in alarms:
        alarm = aws_cloudwatch_metric_alarm(
            synth,
            f"{name}_cpu_{level}",
            {
                "alarm_name": f"{name}-cpu-{level}",
                "alarm_description": description,
                "comparison_operator": operator,
                "evaluation_periods": 2,
                "metric_name": "CPUUtilization",
                "namespace": "AWS/EC2",
                "period": 300,
                "statistic": "Average",
                "threshold": threshold,
                "alarm_actions": [policy.arn],
                "dimensions": {"AutoScalingGroupName": group_name},
            },
        )
        setattr(results, f"cpu_{level}_alarm", alarm)

    logger.debug(
        "Composed web tier %s: %d resources across %d subnets",
        name,
        len(results.all_resources()),
        len(subnet_ids),
    )
    return results
