"""Unit tests for modules/reference.py and modules/computed.py"""

import unittest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from modules.computed import (
    InstanceComputedAttributes,
    SubnetComputedAttributes,
    VpcComputedAttributes,
    computed_attributes_for,
)
from modules.reference import ResourceReference, build_outputs


class TestBuildOutputs(unittest.TestCase):
    def test_direct_and_path_outputs(self):
        """Outputs map to their own name unless a path is given."""
        outputs = build_outputs(
            "aws_mq_broker", "mq", ["id", "arn"], {"console_url": "instances.0.console_url"}
        )
        self.assertEqual(
            outputs,
            {
                "id": "${aws_mq_broker.mq.id}",
                "arn": "${aws_mq_broker.mq.arn}",
                "console_url": "${aws_mq_broker.mq.instances.0.console_url}",
            },
        )


class TestResourceReference(unittest.TestCase):
    """Test attribute resolution on ResourceReference."""

    def setUp(self):
        self.ref = ResourceReference(
            "aws_sqs_queue",
            "jobs",
            {"name": "jobs"},
            build_outputs("aws_sqs_queue", "jobs", ["id", "arn", "name", "url"]),
            {"is_fifo": False, "url": "computed wins"},
        )

    def test_outputs(self):
        self.assertEqual(self.ref.arn, "${aws_sqs_queue.jobs.arn}")

    def test_computed_shadows_outputs(self):
        """Computed values are looked up before outputs."""
        self.assertEqual(self.ref.url, "computed wins")
        self.assertFalse(self.ref.is_fifo)

    def test_type_and_name_are_identity(self):
        """type and name are the resource's own; shadowed outputs use []."""
        self.assertEqual(self.ref.type, "aws_sqs_queue")
        self.assertEqual(self.ref.name, "jobs")
        self.assertEqual(self.ref["name"], "${aws_sqs_queue.jobs.name}")

    def test_unknown_attribute(self):
        with self.assertRaises(AttributeError):
            self.ref.missing_output

    def test_ref_any_attribute(self):
        self.assertEqual(self.ref.ref("visibility_timeout_seconds"), "${aws_sqs_queue.jobs.visibility_timeout_seconds}")

    def test_address(self):
        self.assertEqual(self.ref.address, "aws_sqs_queue.jobs")

    def test_immutable(self):
        with self.assertRaises(AttributeError):
            self.ref.name = "other"
        with self.assertRaises(AttributeError):
            del self.ref.name

    def test_to_dict_and_equality(self):
        data = self.ref.to_dict()
        self.assertEqual(data["type"], "aws_sqs_queue")
        self.assertEqual(data["attributes"], {"name": "jobs"})
        copy = ResourceReference(
            "aws_sqs_queue", "jobs", data["attributes"], data["outputs"], data["computed"]
        )
        self.assertEqual(copy, self.ref)
        self.assertEqual(hash(copy), hash(self.ref))


class TestComputedViews(unittest.TestCase):
    """Test the computed attribute views."""

    def _ref(self, resource_type, attributes):
        return ResourceReference(resource_type, "r", attributes)

    def test_view_lookup(self):
        self.assertIsInstance(
            computed_attributes_for(self._ref("aws_vpc", {})), VpcComputedAttributes
        )
        self.assertIsNone(computed_attributes_for(self._ref("aws_sqs_queue", {})))

    def test_vpc_private_cidr(self):
        view = VpcComputedAttributes(self._ref("aws_vpc", {"cidr_block": "10.0.0.0/16"}))
        self.assertTrue(view.is_private_cidr)
        self.assertEqual(view.estimated_subnet_capacity, 256)

    def test_vpc_public_cidr(self):
        view = VpcComputedAttributes(self._ref("aws_vpc", {"cidr_block": "54.0.0.0/16"}))
        self.assertFalse(view.is_private_cidr)

    def test_vpc_smaller_than_24(self):
        view = VpcComputedAttributes(self._ref("aws_vpc", {"cidr_block": "10.0.0.0/26"}))
        self.assertEqual(view.estimated_subnet_capacity, 0)

    def test_vpc_interpolated_cidr(self):
        view = VpcComputedAttributes(self._ref("aws_vpc", {"cidr_block": "${var.cidr}"}))
        self.assertFalse(view.is_private_cidr)
        self.assertEqual(view.estimated_subnet_capacity, 0)

    def test_subnet_views(self):
        """ip_capacity removes the five AWS-reserved addresses."""
        view = SubnetComputedAttributes(
            self._ref("aws_subnet", {"cidr_block": "10.0.1.0/24", "map_public_ip_on_launch": True})
        )
        self.assertTrue(view.is_public)
        self.assertFalse(view.is_private)
        self.assertEqual(view.subnet_type, "public")
        self.assertEqual(view.ip_capacity, 251)

    def test_instance_views(self):
        view = InstanceComputedAttributes(
            self._ref("aws_instance", {"instance_type": "m5.large", "subnet_id": "subnet-public-a"})
        )
        self.assertEqual(view.compute_family, "m5")
        self.assertEqual(view.compute_size, "large")
        self.assertTrue(view.will_have_public_ip)

    def test_instance_explicit_public_ip(self):
        view = InstanceComputedAttributes(
            self._ref("aws_instance", {"associate_public_ip_address": False, "subnet_id": "public"})
        )
        self.assertFalse(view.will_have_public_ip)
        self.assertIsNone(view.compute_family)

    def test_to_dict(self):
        view = SubnetComputedAttributes(self._ref("aws_subnet", {"cidr_block": "10.0.0.0/28"}))
        self.assertEqual(
            view.to_dict(),
            {"ip_capacity": 11, "is_private": True, "is_public": False, "subnet_type": "private"},
        )


if __name__ == "__main__":
    unittest.main()
