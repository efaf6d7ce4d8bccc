"""Tests for modules/composition.py"""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from modules.composition import (
    CompositeAutoScalingReference,
    CompositeVpcReference,
    auto_scaling_web_tier,
    subnet_cidr,
    vpc_with_subnets,
)
from modules.exceptions import ResourceValidationError
from modules.synthesizer import TerraformSynthesizer


class TestSubnetCidr(unittest.TestCase):
    def test_carving(self):
        self.assertEqual(subnet_cidr("10.0.0.0/16", 18, 0), "10.0.0.0/18")
        self.assertEqual(subnet_cidr("10.0.0.0/16", 18, 3), "10.0.192.0/18")
        self.assertEqual(subnet_cidr("10.0.0.0/16", 24, 5), "10.0.5.0/24")

    def test_subnet_outside_range(self):
        with self.assertRaises(ValueError):
            subnet_cidr("10.0.0.0/16", 18, 4)


class TestVpcWithSubnets(unittest.TestCase):
    """Test the VPC composition across availability zones."""

    def setUp(self):
        self.synth = TerraformSynthesizer()

    def _resources(self, resource_type):
        return self.synth.synthesis["resource"][resource_type]

    def test_two_zones(self):
        result = vpc_with_subnets(
            self.synth, "app", "10.0.0.0/16", ["us-east-1a", "us-east-1b"]
        )
        self.assertIsInstance(result, CompositeVpcReference)
        self.assertEqual(len(result.all_resources()), 11)
        self.assertEqual(len(result.public_subnets), 2)
        self.assertEqual(len(result.private_subnets), 2)
        self.assertEqual(len(result.nat_gateways), 2)
        self.assertEqual(len(result.private_route_tables), 2)

        subnets = self._resources("aws_subnet")
        self.assertEqual(subnets["app_public_subnet_0"]["cidr_block"], "10.0.0.0/18")
        self.assertEqual(subnets["app_public_subnet_1"]["cidr_block"], "10.0.64.0/18")
        self.assertEqual(subnets["app_private_subnet_0"]["cidr_block"], "10.0.128.0/18")
        self.assertEqual(subnets["app_private_subnet_1"]["cidr_block"], "10.0.192.0/18")
        self.assertEqual(subnets["app_public_subnet_1"]["availability_zone"], "us-east-1b")
        self.assertTrue(subnets["app_public_subnet_0"]["map_public_ip_on_launch"])
        self.assertFalse(subnets["app_private_subnet_0"]["map_public_ip_on_launch"])

    def test_declaration_order(self):
        """Resources are declared VPC first, route tables last."""
        vpc_with_subnets(self.synth, "app", "10.0.0.0/16", ["us-east-1a"])
        self.assertEqual(
            self.synth.resource_addresses(),
            [
                "aws_vpc.app_vpc",
                "aws_internet_gateway.app_igw",
                "aws_subnet.app_public_subnet_0",
                "aws_subnet.app_private_subnet_0",
                "aws_nat_gateway.app_nat_0",
                "aws_route_table.app_public_rt",
                "aws_route_table.app_private_rt_0",
            ],
        )

    def test_wiring(self):
        result = vpc_with_subnets(self.synth, "app", "10.0.0.0/16", ["us-east-1a", "us-east-1b"])
        self.assertEqual(
            self._resources("aws_internet_gateway")["app_igw"]["vpc_id"], "${aws_vpc.app_vpc.id}"
        )
        self.assertEqual(
            self._resources("aws_nat_gateway")["app_nat_1"]["subnet_id"],
            "${aws_subnet.app_public_subnet_1.id}",
        )
        tables = self._resources("aws_route_table")
        self.assertEqual(
            tables["app_public_rt"]["route"],
            {"cidr_block": "0.0.0.0/0", "gateway_id": "${aws_internet_gateway.app_igw.id}"},
        )
        self.assertEqual(
            tables["app_private_rt_1"]["route"],
            {"cidr_block": "0.0.0.0/0", "nat_gateway_id": "${aws_nat_gateway.app_nat_1.id}"},
        )
        self.assertTrue(result.public_route_table.has_internet_route)
        self.assertTrue(result.private_route_tables[0].has_nat_route)
        self.assertEqual(
            result.private_subnet_ids,
            ["${aws_subnet.app_private_subnet_0.id}", "${aws_subnet.app_private_subnet_1.id}"],
        )

    def test_three_zones_use_smaller_subnets(self):
        vpc_with_subnets(
            self.synth, "app", "10.0.0.0/16", ["us-east-1a", "us-east-1b", "us-east-1c"]
        )
        subnets = self._resources("aws_subnet")
        self.assertEqual(subnets["app_public_subnet_2"]["cidr_block"], "10.0.64.0/19")
        self.assertEqual(subnets["app_private_subnet_0"]["cidr_block"], "10.0.96.0/19")

    def test_explicit_subnet_cidrs(self):
        vpc_with_subnets(
            self.synth,
            "app",
            "10.0.0.0/16",
            ["us-east-1a", "us-east-1b"],
            public_subnet_cidrs=["10.0.1.0/24", "10.0.2.0/24"],
            private_subnet_cidrs=["10.0.11.0/24"],
        )
        subnets = self._resources("aws_subnet")
        self.assertEqual(subnets["app_public_subnet_1"]["cidr_block"], "10.0.2.0/24")
        self.assertEqual(subnets["app_private_subnet_0"]["cidr_block"], "10.0.11.0/24")
        # Missing explicit entries fall back to carved ranges
        self.assertEqual(subnets["app_private_subnet_1"]["cidr_block"], "10.0.192.0/18")

    def test_tags(self):
        vpc_with_subnets(
            self.synth,
            "app",
            "10.0.0.0/16",
            ["us-east-1a"],
            attributes={
                "vpc_tags": {"Environment": "prod"},
                "private_subnet_tags": {"kubernetes.io/role/internal-elb": "1"},
            },
        )
        self.assertEqual(
            self._resources("aws_vpc")["app_vpc"]["tags"], {"Name": "app-vpc", "Environment": "prod"}
        )
        self.assertEqual(
            self._resources("aws_subnet")["app_private_subnet_0"]["tags"],
            {"Name": "app-private-0", "Type": "private", "kubernetes.io/role/internal-elb": "1"},
        )
        self.assertEqual(
            self._resources("aws_route_table")["app_private_rt_0"]["tags"],
            {"Name": "app-private-rt-0"},
        )

    def test_default_tags_reach_every_resource(self):
        synth = TerraformSynthesizer(default_tags={"ManagedBy": "pangea"})
        vpc_with_subnets(synth, "app", "10.0.0.0/16", ["us-east-1a"])
        for resources in synth.synthesis["resource"].values():
            for body in resources.values():
                self.assertEqual(body["tags"]["ManagedBy"], "pangea")

    def test_requires_a_zone(self):
        with self.assertRaises(ValueError) as context:
            vpc_with_subnets(self.synth, "app", "10.0.0.0/16", [])
        self.assertEqual(str(context.exception), "At least one availability zone must be specified")

    def test_invalid_zone_fails_validation(self):
        with self.assertRaises(ResourceValidationError):
            vpc_with_subnets(self.synth, "app", "10.0.0.0/16", ["nowhere"])


class TestAutoScalingWebTier(unittest.TestCase):
    """Test the auto scaling web tier wiring."""

    def setUp(self):
        self.synth = TerraformSynthesizer()
        self.network = vpc_with_subnets(
            self.synth, "net", "10.0.0.0/16", ["us-east-1a", "us-east-1b"]
        )

    def _resources(self, resource_type):
        return self.synth.synthesis["resource"][resource_type]

    def _tier(self, attributes=None):
        return auto_scaling_web_tier(
            self.synth,
            "web",
            self.network.vpc,
            self.network.private_subnets,
            attributes,
        )

    def test_declares_every_resource(self):
        tier = self._tier()
        self.assertIsInstance(tier, CompositeAutoScalingReference)
        self.assertEqual(len(tier.all_resources()), 9)
        self.assertEqual(
            [ref.address for ref in tier.all_resources()],
            [
                "aws_security_group.web_sg",
                "aws_launch_template.web_launch_template",
                "aws_lb_target_group.web_target_group",
                "aws_autoscaling_group.web_asg",
                "aws_autoscaling_attachment.web_asg_attachment",
                "aws_autoscaling_policy.web_scale_up",
                "aws_autoscaling_policy.web_scale_down",
                "aws_cloudwatch_metric_alarm.web_cpu_high",
                "aws_cloudwatch_metric_alarm.web_cpu_low",
            ],
        )
        self.assertEqual(repr(tier), "CompositeAutoScalingReference('web', 9 resources)")

    def test_group_wiring(self):
        self._tier()
        group = self._resources("aws_autoscaling_group")["web_asg"]
        self.assertEqual(
            group["vpc_zone_identifier"],
            ["${aws_subnet.net_private_subnet_0.id}", "${aws_subnet.net_private_subnet_1.id}"],
        )
        self.assertEqual(
            group["launch_template"],
            {"id": "${aws_launch_template.web_launch_template.id}", "version": "$Latest"},
        )
        self.assertEqual(group["health_check_type"], "ELB")
        self.assertEqual((group["min_size"], group["desired_capacity"], group["max_size"]), (1, 2, 10))
        self.assertEqual(
            self._resources("aws_autoscaling_attachment")["web_asg_attachment"],
            {
                "autoscaling_group_name": "${aws_autoscaling_group.web_asg.name}",
                "lb_target_group_arn": "${aws_lb_target_group.web_target_group.arn}",
            },
        )
        template = self._resources("aws_launch_template")["web_launch_template"]
        self.assertEqual(template["vpc_security_group_ids"], ["${aws_security_group.web_sg.id}"])
        self.assertEqual(template["instance_type"], "t3.micro")

    def test_alarms_drive_policies(self):
        self._tier()
        policies = self._resources("aws_autoscaling_policy")
        self.assertEqual(policies["web_scale_up"]["scaling_adjustment"], 1)
        self.assertEqual(policies["web_scale_down"]["scaling_adjustment"], -1)
        alarms = self._resources("aws_cloudwatch_metric_alarm")
        high, low = alarms["web_cpu_high"], alarms["web_cpu_low"]
        self.assertEqual(high["alarm_actions"], ["${aws_autoscaling_policy.web_scale_up.arn}"])
        self.assertEqual(low["alarm_actions"], ["${aws_autoscaling_policy.web_scale_down.arn}"])
        self.assertEqual(high["comparison_operator"], "GreaterThanThreshold")
        self.assertEqual(high["threshold"], 70)
        self.assertEqual(low["threshold"], 30)
        self.assertEqual(
            high["dimensions"], {"AutoScalingGroupName": "${aws_autoscaling_group.web_asg.name}"}
        )
        self.assertEqual(high["alarm_description"], "Trigger scale up when CPU exceeds 70%")

    def test_settings_and_tags(self):
        self._tier(
            {
                "instance_type": "m5.large",
                "health_check_path": "/healthz",
                "tags": {"Team": "web"},
            }
        )
        group = self._resources("aws_autoscaling_group")["web_asg"]
        self.assertEqual(
            group["tag"],
            [
                {"key": "Name", "value": "web-instance", "propagate_at_launch": True},
                {"key": "Team", "value": "web", "propagate_at_launch": True},
            ],
        )
        self.assertEqual(
            self._resources("aws_security_group")["web_sg"]["tags"],
            {"Name": "web-security-group", "Team": "web"},
        )
        target_group = self._resources("aws_lb_target_group")["web_target_group"]
        self.assertEqual(target_group["health_check"]["path"], "/healthz")
        self.assertEqual(target_group["vpc_id"], "${aws_vpc.net_vpc.id}")
        self.assertEqual(
            self._resources("aws_launch_template")["web_launch_template"]["instance_type"],
            "m5.large",
        )

    def test_security_group_rules(self):
        self._tier()
        group = self._resources("aws_security_group")["web_sg"]
        self.assertEqual([rule["from_port"] for rule in group["ingress"]], [80, 443])
        self.assertEqual(group["egress"]["protocol"], "-1")
        self.assertEqual(group["name_prefix"], "web-sg-")

    def test_accepts_plain_ids(self):
        tier = auto_scaling_web_tier(self.synth, "api", "vpc-123", ["subnet-a"])
        self.assertEqual(len(tier.all_resources()), 9)
        self.assertEqual(
            self._resources("aws_autoscaling_group")["api_asg"]["vpc_zone_identifier"],
            ["subnet-a"],
        )

    def test_requires_a_subnet(self):
        with self.assertRaises(ValueError) as context:
            auto_scaling_web_tier(self.synth, "web", "vpc-123", [])
        self.assertEqual(str(context.exception), "At least one subnet must be specified")

    def test_unknown_setting(self):
        with self.assertRaises(ValueError):
            self._tier({"instance_count": 3})

    def test_invalid_sizes_fail_validation(self):
        with self.assertRaises(ResourceValidationError):
            self._tier({"min_instances": 5, "max_instances": 2})


if __name__ == "__main__":
    unittest.main()
