"""Unit tests for the pangea.py CLI commands."""

import json
import sys
import unittest
from pathlib import Path

from click.testing import CliRunner

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from pangea import cli

FIXTURES = Path(__file__).parent.parent / "fixtures"
TEMPLATE = str(FIXTURES / "templates" / "web_network.py")
INVALID_TEMPLATE = str(FIXTURES / "templates" / "invalid_queue.py")
CONFIG = str(FIXTURES / "pangea.yaml")
VARFILE = str(FIXTURES / "network.tfvars.json")


class TestSynthCommand(unittest.TestCase):
    """Test `pangea synth`."""

    def setUp(self):
        self.runner = CliRunner()

    def test_synth_writes_terraform_json(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(
                cli,
                [
                    "synth",
                    "--template", TEMPLATE,
                    "--config", CONFIG,
                    "--namespace", "production",
                    "--varfile", VARFILE,
                    "--outfile", "stack",
                ],
            )
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn("for namespace production (eu-west-1)", result.output)
            self.assertIn("Exporting into file stack.json", result.output)
            with open("stack.json") as f:
                synthesis = json.load(f)
        vpc = synthesis["resource"]["aws_vpc"]["web_vpc"]
        self.assertEqual(vpc["cidr_block"], "10.20.0.0/16")
        self.assertEqual(vpc["tags"]["Environment"], "production")
        self.assertEqual(synthesis["provider"]["aws"]["region"], "eu-west-1")
        self.assertIn("s3", synthesis["terraform"]["backend"])

    def test_synth_default_outfile(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ["synth", "--template", TEMPLATE])
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertTrue(Path("main.tf.json").exists())

    def test_template_is_required(self):
        result = self.runner.invoke(cli, ["synth"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("--template", result.output)


class TestResourcesCommand(unittest.TestCase):
    """Test `pangea resources`."""

    def test_lists_categories(self):
        result = CliRunner().invoke(cli, ["resources"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("network:", result.output)
        self.assertIn("  aws_vpc", result.output)
        self.assertIn("  aws_mq_broker", result.output)

    def test_single_category(self):
        result = CliRunner().invoke(cli, ["resources", "--category", "database"])
        self.assertIn("aws_dynamodb_table", result.output)
        self.assertNotIn("aws_vpc", result.output)

    def test_unknown_category(self):
        result = CliRunner().invoke(cli, ["resources", "--category", "quantum"])
        self.assertIn("No resources in category 'quantum'", result.output)


class TestGraphdataCommand(unittest.TestCase):
    """Test `pangea graphdata`."""

    def setUp(self):
        self.runner = CliRunner()

    def test_graph_export(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ["graphdata", "--template", TEMPLATE])
            self.assertEqual(result.exit_code, 0, result.output)
            with open("graphdata.json") as f:
                graph = json.load(f)
        self.assertEqual(graph["aws_internet_gateway.web_igw"], ["aws_vpc.web_vpc"])
        self.assertEqual(graph["aws_vpc.web_vpc"], [])

    def test_show_services(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(
                cli, ["graphdata", "--template", TEMPLATE, "--show_services", "--outfile", "services"]
            )
            self.assertEqual(result.exit_code, 0, result.output)
            with open("services.json") as f:
                services = json.load(f)
        self.assertIn("aws_nat_gateway", services)
        self.assertEqual(services, sorted(set(services)))


class TestValidateCommand(unittest.TestCase):
    """Test `pangea validate`."""

    def test_valid_template(self):
        result = CliRunner().invoke(
            cli, ["validate", "--template", TEMPLATE, "--varfile", VARFILE]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Valid: 12 resources declared", result.output)

    def test_invalid_template(self):
        result = CliRunner().invoke(cli, ["validate", "--template", INVALID_TEMPLATE])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Validation failed: FIFO queue names must end with", result.output)

    def test_unknown_namespace(self):
        result = CliRunner().invoke(
            cli, ["validate", "--template", TEMPLATE, "--config", CONFIG, "--namespace", "staging"]
        )
        self.assertEqual(result.exit_code, 1)
        self.assertIn("ERROR: Unknown namespace 'staging'", result.output)


if __name__ == "__main__":
    unittest.main()
