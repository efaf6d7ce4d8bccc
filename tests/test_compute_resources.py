"""Tests for EC2 instance, Lambda function and Auto Scaling resources."""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from modules.exceptions import ResourceValidationError
from modules.synthesizer import TerraformSynthesizer
from resource_classes.aws.compute import (
    aws_autoscaling_attachment,
    aws_autoscaling_group,
    aws_autoscaling_policy,
    aws_instance,
    aws_lambda_function,
    aws_launch_template,
)

LAMBDA_ROLE = "arn:aws:iam::123456789012:role/lambda-exec"


class TestInstance(unittest.TestCase):
    """Test aws_instance synthesis and computed values."""

    def setUp(self):
        self.synth = TerraformSynthesizer()

    def _body(self, name):
        return self.synth.synthesis["resource"]["aws_instance"][name]

    def test_web_server(self):
        ref = aws_instance(
            self.synth,
            "web",
            {
                "ami": "ami-0123456789abcdef0",
                "instance_type": "t3.micro",
                "subnet_id": "${aws_subnet.public_a.id}",
                "vpc_security_group_ids": ["${aws_security_group.web.id}"],
                "root_block_device": {"volume_type": "gp3", "volume_size": 20, "encrypted": True},
                "tags": {"Name": "web"},
            },
        )
        body = self._body("web")
        self.assertEqual(
            body["root_block_device"], {"volume_type": "gp3", "volume_size": 20, "encrypted": True}
        )
        self.assertNotIn("monitoring", body)
        self.assertEqual(ref.public_ip, "${aws_instance.web.public_ip}")
        self.assertFalse(ref.supports_ebs_optimization)
        self.assertEqual(ref.estimated_hourly_cost, 0.0104)
        self.assertEqual(ref.compute_family, "t3")
        self.assertEqual(ref.compute_size, "micro")

    def test_unknown_instance_type_cost(self):
        ref = aws_instance(self.synth, "big", {"ami": "ami-1", "instance_type": "x2iedn.32xlarge"})
        self.assertEqual(ref.estimated_hourly_cost, 0.10)
        self.assertTrue(ref.supports_ebs_optimization)

    def test_ebs_volumes_are_repeated_blocks(self):
        aws_instance(
            self.synth,
            "db",
            {
                "ami": "ami-1",
                "instance_type": "m5.large",
                "ebs_block_device": [
                    {"device_name": "/dev/sdf", "volume_size": 100},
                    {"device_name": "/dev/sdg", "volume_type": "io2", "iops": 4000},
                ],
            },
        )
        devices = self._body("db")["ebs_block_device"]
        self.assertEqual([d["device_name"] for d in devices], ["/dev/sdf", "/dev/sdg"])

    def test_iops_requires_provisioned_volume(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_instance(
                self.synth,
                "bad",
                {"ami": "ami-1", "instance_type": "t3.micro", "root_block_device": {"volume_type": "gp2", "iops": 100}},
            )
        self.assertEqual(
            context.exception.message, "IOPS can only be specified for io1 or io2 volume types"
        )

    def test_user_data_exclusive(self):
        with self.assertRaises(ResourceValidationError):
            aws_instance(
                self.synth,
                "bad",
                {"ami": "ami-1", "instance_type": "t3.micro", "user_data": "a", "user_data_base64": "YQ=="},
            )

    def test_unknown_attribute_rejected(self):
        """Unknown attributes fail validation instead of being passed through."""
        with self.assertRaises(ResourceValidationError):
            aws_instance(self.synth, "bad", {"ami": "ami-1", "instance_type": "t3.micro", "colour": "red"})


class TestLambdaFunction(unittest.TestCase):
    """Test aws_lambda_function package rules and nested blocks."""

    def setUp(self):
        self.synth = TerraformSynthesizer()

    def _zip(self, **overrides):
        attributes = {
            "function_name": "processor",
            "role": LAMBDA_ROLE,
            "handler": "app.handler",
            "runtime": "python3.12",
            "filename": "build/processor.zip",
        }
        attributes.update(overrides)
        return attributes

    def test_zip_function(self):
        ref = aws_lambda_function(
            self.synth,
            "processor",
            self._zip(
                environment_variables={"TABLE_NAME": "orders"},
                tracing_mode="Active",
                dead_letter_target_arn="${aws_sqs_queue.dlq.arn}",
            ),
        )
        body = self.synth.synthesis["resource"]["aws_lambda_function"]["processor"]
        self.assertEqual(body["environment"], {"variables": {"TABLE_NAME": "orders"}})
        self.assertEqual(body["tracing_config"], {"mode": "Active"})
        self.assertEqual(body["dead_letter_config"], {"target_arn": "${aws_sqs_queue.dlq.arn}"})
        self.assertEqual(body["architectures"], ["x86_64"])
        self.assertTrue(ref.has_dlq)
        self.assertFalse(ref.is_container_based)
        self.assertEqual(ref.estimated_monthly_cost, 6.45)
        self.assertEqual(ref.invoke_arn, "${aws_lambda_function.processor.invoke_arn}")

    def test_image_function(self):
        ref = aws_lambda_function(
            self.synth,
            "container",
            {
                "function_name": "container",
                "role": LAMBDA_ROLE,
                "package_type": "Image",
                "image_uri": "123456789012.dkr.ecr.us-east-1.amazonaws.com/app:latest",
                "architectures": ["arm64"],
            },
        )
        body = self.synth.synthesis["resource"]["aws_lambda_function"]["container"]
        self.assertEqual(body["package_type"], "Image")
        self.assertNotIn("handler", body)
        self.assertTrue(ref.is_container_based)
        self.assertEqual(ref.architecture, "arm64")

    def test_image_requires_uri(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_lambda_function(
                self.synth, "bad", {"function_name": "bad", "role": LAMBDA_ROLE, "package_type": "Image"}
            )
        self.assertIn("image_uri is required", context.exception.message)

    def test_zip_requires_handler(self):
        with self.assertRaises(ResourceValidationError):
            aws_lambda_function(self.synth, "bad", self._zip(handler=None))

    def test_s3_key_required(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_lambda_function(
                self.synth, "bad", self._zip(filename=None, s3_bucket="artifacts")
            )
        self.assertEqual(context.exception.message, "s3_key is required when s3_bucket is specified")

    def test_unsupported_runtime(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_lambda_function(self.synth, "bad", self._zip(runtime="python2.7"))
        self.assertEqual(context.exception.message, "Unsupported Lambda runtime: python2.7")

    def test_reserved_environment_variable(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_lambda_function(
                self.synth, "bad", self._zip(environment_variables={"AWS_REGION": "x"})
            )
        self.assertIn("reserved by Lambda", context.exception.message)

    def test_snap_start_java_only(self):
        with self.assertRaises(ResourceValidationError):
            aws_lambda_function(self.synth, "bad", self._zip(snap_start=True))

    def test_snap_start_java(self):
        ref = aws_lambda_function(
            self.synth, "java", self._zip(runtime="java21", snap_start=True)
        )
        body = self.synth.synthesis["resource"]["aws_lambda_function"]["java"]
        self.assertEqual(body["snap_start"], {"apply_on": "PublishedVersions"})
        self.assertTrue(ref.supports_snap_start)

    def test_efs_mount_path(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_lambda_function(
                self.synth,
                "bad",
                self._zip(file_system_config={"arn": "arn:efs", "local_mount_path": "/data"}),
            )
        self.assertIn("/mnt/", context.exception.message)


class TestAutoScalingGroup(unittest.TestCase):
    """Test aws_autoscaling_group launch sources and tag blocks."""

    def setUp(self):
        self.synth = TerraformSynthesizer()

    def test_group_with_launch_template(self):
        ref = aws_autoscaling_group(
            self.synth,
            "web",
            {
                "min_size": 2,
                "max_size": 6,
                "desired_capacity": 3,
                "launch_template": {"id": "${aws_launch_template.web.id}"},
                "vpc_zone_identifier": ["subnet-a", "subnet-b"],
                "target_group_arns": ["${aws_lb_target_group.web.arn}"],
                "health_check_type": "ELB",
                "tags": [
                    {"key": "Name", "value": "web"},
                    {"key": "Tier", "value": "frontend", "propagate_at_launch": False},
                ],
            },
        )
        body = self.synth.synthesis["resource"]["aws_autoscaling_group"]["web"]
        self.assertEqual(
            body["launch_template"], {"id": "${aws_launch_template.web.id}", "version": "$Latest"}
        )
        self.assertEqual(
            body["tag"],
            [
                {"key": "Name", "value": "web", "propagate_at_launch": True},
                {"key": "Tier", "value": "frontend", "propagate_at_launch": False},
            ],
        )
        self.assertTrue(ref.uses_launch_template)
        self.assertTrue(ref.uses_target_groups)

    def test_instance_refresh(self):
        aws_autoscaling_group(
            self.synth,
            "rolling",
            {
                "min_size": 1,
                "max_size": 2,
                "launch_configuration": "web-lc",
                "availability_zones": ["us-east-1a"],
                "instance_refresh": {"min_healthy_percentage": 50, "triggers": ["tag"]},
            },
        )
        body = self.synth.synthesis["resource"]["aws_autoscaling_group"]["rolling"]
        self.assertEqual(
            body["instance_refresh"],
            {
                "strategy": "Rolling",
                "preferences": {"min_healthy_percentage": 50},
                "triggers": ["tag"],
            },
        )

    def test_requires_launch_source(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_autoscaling_group(
                self.synth, "bad", {"min_size": 1, "max_size": 2, "availability_zones": ["us-east-1a"]}
            )
        self.assertIn("must specify one of", context.exception.message)

    def test_single_launch_source(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_autoscaling_group(
                self.synth,
                "bad",
                {
                    "min_size": 1,
                    "max_size": 2,
                    "launch_configuration": "lc",
                    "launch_template": {"name": "lt"},
                    "availability_zones": ["us-east-1a"],
                },
            )
        self.assertIn("can only specify one of", context.exception.message)

    def test_desired_capacity_range(self):
        with self.assertRaises(ResourceValidationError):
            aws_autoscaling_group(
                self.synth,
                "bad",
                {"min_size": 2, "max_size": 4, "desired_capacity": 8, "launch_configuration": "lc", "availability_zones": ["a"]},
            )

    def test_requires_placement(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_autoscaling_group(
                self.synth, "bad", {"min_size": 1, "max_size": 2, "launch_configuration": "lc"}
            )
        self.assertIn("vpc_zone_identifier", context.exception.message)


class TestLaunchTemplate(unittest.TestCase):
    """Test aws_launch_template flattening and validation."""

    def setUp(self):
        self.synth = TerraformSynthesizer()

    def _body(self, name):
        return self.synth.synthesis["resource"]["aws_launch_template"][name]

    def test_template_data_written_at_top_level(self):
        ref = aws_launch_template(
            self.synth,
            "web",
            {
                "name_prefix": "web-lt-",
                "launch_template_data": {
                    "image_id": "ami-0123456789abcdef0",
                    "instance_type": "t3.micro",
                    "vpc_security_group_ids": ["${aws_security_group.web.id}"],
                    "iam_instance_profile": {"name": "web-profile"},
                    "monitoring": {"enabled": True},
                    "block_device_mappings": [
                        {
                            "device_name": "/dev/xvda",
                            "ebs": {"volume_type": "gp3", "volume_size": 30},
                        }
                    ],
                    "tag_specifications": [
                        {"resource_type": "instance", "tags": {"Role": "web"}}
                    ],
                },
                "tags": {"Name": "web-lt"},
            },
        )
        body = self._body("web")
        self.assertNotIn("launch_template_data", body)
        self.assertEqual(body["image_id"], "ami-0123456789abcdef0")
        self.assertEqual(body["instance_type"], "t3.micro")
        self.assertEqual(body["iam_instance_profile"], {"name": "web-profile"})
        self.assertEqual(body["monitoring"], {"enabled": True})
        self.assertEqual(body["block_device_mappings"]["ebs"]["volume_size"], 30)
        self.assertEqual(body["tag_specifications"]["tags"], {"Role": "web"})
        self.assertNotIn("instance_initiated_shutdown_behavior", body)
        self.assertNotIn("disable_api_termination", body)
        self.assertEqual(ref.latest_version, "${aws_launch_template.web.latest_version}")
        self.assertTrue(ref.has_instance_profile)
        self.assertEqual(ref.block_device_count, 1)

    def test_name_conflict(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_launch_template(self.synth, "bad", {"name": "web", "name_prefix": "web-"})
        self.assertEqual(
            context.exception.message, "Cannot specify both 'name' and 'name_prefix'"
        )

    def test_invalid_instance_type(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_launch_template(
                self.synth, "bad", {"launch_template_data": {"instance_type": "large"}}
            )
        self.assertIn("invalid instance type", context.exception.message)

    def test_instance_type_from_variable(self):
        aws_launch_template(
            self.synth, "web", {"launch_template_data": {"instance_type": "${var.size}"}}
        )
        self.assertEqual(self._body("web")["instance_type"], "${var.size}")

    def test_instance_profile_needs_one_identifier(self):
        with self.assertRaises(ResourceValidationError):
            aws_launch_template(
                self.synth,
                "bad",
                {"launch_template_data": {"iam_instance_profile": {}}},
            )

    def test_network_interfaces_conflict_with_security_groups(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_launch_template(
                self.synth,
                "bad",
                {
                    "launch_template_data": {
                        "vpc_security_group_ids": ["sg-1"],
                        "network_interfaces": [{"subnet_id": "subnet-1"}],
                    }
                },
            )
        self.assertIn("network_interfaces", context.exception.message)

    def test_network_interface_defaults_left_out(self):
        aws_launch_template(
            self.synth,
            "web",
            {
                "launch_template_data": {
                    "network_interfaces": [
                        {"subnet_id": "subnet-1", "associate_public_ip_address": True}
                    ],
                    "instance_initiated_shutdown_behavior": "terminate",
                }
            },
        )
        body = self._body("web")
        self.assertEqual(
            body["network_interfaces"],
            {"device_index": 0, "associate_public_ip_address": True, "subnet_id": "subnet-1"},
        )
        self.assertEqual(body["instance_initiated_shutdown_behavior"], "terminate")


class TestAutoScalingAttachment(unittest.TestCase):
    def setUp(self):
        self.synth = TerraformSynthesizer()

    def test_target_group_attachment(self):
        ref = aws_autoscaling_attachment(
            self.synth,
            "web",
            {
                "autoscaling_group_name": "${aws_autoscaling_group.web.name}",
                "lb_target_group_arn": "${aws_lb_target_group.web.arn}",
            },
        )
        self.assertEqual(
            self.synth.synthesis["resource"]["aws_autoscaling_attachment"]["web"],
            {
                "autoscaling_group_name": "${aws_autoscaling_group.web.name}",
                "lb_target_group_arn": "${aws_lb_target_group.web.arn}",
            },
        )
        self.assertTrue(ref.attaches_target_group)

    def test_requires_exactly_one_target(self):
        for targets in ({}, {"lb_target_group_arn": "arn", "elb": "classic"}):
            with self.assertRaises(ResourceValidationError):
                aws_autoscaling_attachment(
                    self.synth, "bad", {"autoscaling_group_name": "web", **targets}
                )


class TestAutoScalingPolicy(unittest.TestCase):
    """Test aws_autoscaling_policy rules per policy type."""

    def setUp(self):
        self.synth = TerraformSynthesizer()

    def _body(self, name):
        return self.synth.synthesis["resource"]["aws_autoscaling_policy"][name]

    def test_simple_scaling(self):
        ref = aws_autoscaling_policy(
            self.synth,
            "scale_up",
            {
                "autoscaling_group_name": "web",
                "adjustment_type": "ChangeInCapacity",
                "scaling_adjustment": 1,
                "cooldown": 300,
            },
        )
        self.assertEqual(
            self._body("scale_up"),
            {
                "name": "scale_up",
                "autoscaling_group_name": "web",
                "policy_type": "SimpleScaling",
                "adjustment_type": "ChangeInCapacity",
                "scaling_adjustment": 1,
                "cooldown": 300,
            },
        )
        self.assertTrue(ref.is_simple_scaling)
        self.assertFalse(ref.is_target_tracking)
        self.assertEqual(ref.arn, "${aws_autoscaling_policy.scale_up.arn}")

    def test_simple_scaling_requires_adjustment(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_autoscaling_policy(self.synth, "bad", {"autoscaling_group_name": "web"})
        self.assertEqual(
            context.exception.message,
            "SimpleScaling policy requires adjustment_type and scaling_adjustment",
        )

    def test_scale_in_by_zero_is_allowed(self):
        aws_autoscaling_policy(
            self.synth,
            "noop",
            {
                "autoscaling_group_name": "web",
                "adjustment_type": "ExactCapacity",
                "scaling_adjustment": 0,
            },
        )
        self.assertEqual(self._body("noop")["scaling_adjustment"], 0)

    def test_step_scaling(self):
        aws_autoscaling_policy(
            self.synth,
            "steps",
            {
                "autoscaling_group_name": "web",
                "policy_type": "StepScaling",
                "adjustment_type": "PercentChangeInCapacity",
                "min_adjustment_magnitude": 2,
                "step_adjustments": [
                    {"scaling_adjustment": 10, "metric_interval_upper_bound": 20},
                    {"scaling_adjustment": 30, "metric_interval_lower_bound": 20},
                ],
            },
        )
        body = self._body("steps")
        self.assertEqual(len(body["step_adjustment"]), 2)
        self.assertEqual(body["metric_aggregation_type"], "Average")
        self.assertEqual(body["min_adjustment_magnitude"], 2)

    def test_step_scaling_rejects_scaling_adjustment(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_autoscaling_policy(
                self.synth,
                "bad",
                {
                    "autoscaling_group_name": "web",
                    "policy_type": "StepScaling",
                    "adjustment_type": "ChangeInCapacity",
                    "scaling_adjustment": 1,
                    "step_adjustments": [{"scaling_adjustment": 1}],
                },
            )
        self.assertIn("use step_adjustments instead", context.exception.message)

    def test_step_bounds_ordered(self):
        with self.assertRaises(ResourceValidationError):
            aws_autoscaling_policy(
                self.synth,
                "bad",
                {
                    "autoscaling_group_name": "web",
                    "policy_type": "StepScaling",
                    "adjustment_type": "ChangeInCapacity",
                    "step_adjustments": [
                        {
                            "scaling_adjustment": 1,
                            "metric_interval_lower_bound": 50,
                            "metric_interval_upper_bound": 10,
                        }
                    ],
                },
            )

    def test_target_tracking_predefined(self):
        ref = aws_autoscaling_policy(
            self.synth,
            "cpu",
            {
                "autoscaling_group_name": "web",
                "policy_type": "TargetTrackingScaling",
                "target_tracking_configuration": {
                    "target_value": 50,
                    "predefined_metric_specification": {
                        "predefined_metric_type": "ASGAverageCPUUtilization"
                    },
                },
            },
        )
        tracking = self._body("cpu")["target_tracking_configuration"]
        self.assertEqual(tracking["target_value"], 50)
        self.assertEqual(
            tracking["predefined_metric_specification"],
            {"predefined_metric_type": "ASGAverageCPUUtilization"},
        )
        self.assertNotIn("adjustment_type", self._body("cpu"))
        self.assertTrue(ref.is_target_tracking)

    def test_target_tracking_customized_dimensions(self):
        aws_autoscaling_policy(
            self.synth,
            "queue",
            {
                "autoscaling_group_name": "workers",
                "policy_type": "TargetTrackingScaling",
                "target_tracking_configuration": {
                    "target_value": 100,
                    "customized_metric_specification": {
                        "metric_name": "ApproximateNumberOfMessagesVisible",
                        "namespace": "AWS/SQS",
                        "statistic": "Average",
                        "dimensions": {"QueueName": "jobs"},
                    },
                },
            },
        )
        customized = self._body("queue")["target_tracking_configuration"][
            "customized_metric_specification"
        ]
        self.assertEqual(customized["metric_dimension"], {"name": "QueueName", "value": "jobs"})
        self.assertEqual(customized["namespace"], "AWS/SQS")

    def test_request_count_needs_resource_label(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_autoscaling_policy(
                self.synth,
                "bad",
                {
                    "autoscaling_group_name": "web",
                    "policy_type": "TargetTrackingScaling",
                    "target_tracking_configuration": {
                        "target_value": 1000,
                        "predefined_metric_specification": {
                            "predefined_metric_type": "ALBRequestCountPerTarget"
                        },
                    },
                },
            )
        self.assertIn("resource_label", context.exception.message)

    def test_target_tracking_rejects_adjustment(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_autoscaling_policy(
                self.synth,
                "bad",
                {
                    "autoscaling_group_name": "web",
                    "policy_type": "TargetTrackingScaling",
                    "adjustment_type": "ChangeInCapacity",
                    "target_tracking_configuration": {
                        "target_value": 50,
                        "predefined_metric_specification": {
                            "predefined_metric_type": "ASGAverageCPUUtilization"
                        },
                    },
                },
            )
        self.assertEqual(
            context.exception.message,
            "TargetTrackingScaling policy cannot use adjustment_type or scaling_adjustment",
        )

    def test_predictive_requires_configuration(self):
        with self.assertRaises(ResourceValidationError) as context:
            aws_autoscaling_policy(
                self.synth,
                "bad",
                {"autoscaling_group_name": "web", "policy_type": "PredictiveScaling"},
            )
        self.assertEqual(
            context.exception.message,
            "PredictiveScaling policy requires predictive_scaling_configuration",
        )

    def test_min_adjustment_magnitude_needs_percent(self):
        with self.assertRaises(ResourceValidationError):
            aws_autoscaling_policy(
                self.synth,
                "bad",
                {
                    "autoscaling_group_name": "web",
                    "adjustment_type": "ChangeInCapacity",
                    "scaling_adjustment": 1,
                    "min_adjustment_magnitude": 2,
                },
            )


if __name__ == "__main__":
    unittest.main()
