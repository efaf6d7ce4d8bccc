"""Unit tests for modules/utils/terraform_utils.py"""

import json
import os
import tempfile
import unittest
import sys
from pathlib import Path

# Add modules directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from modules.utils.terraform_utils import getvar, merge_varfiles, tfvar_read
from modules.exceptions import TerraformParsingError


def _write_temp(content: str, suffix: str = ".tfvars") -> str:
    with tempfile.NamedTemporaryFile(mode="w", suffix=suffix, delete=False) as f:
        f.write(content)
        return f.name


class TestGetvar(unittest.TestCase):
    """Test getvar() lookups over template variables."""

    def setUp(self):
        self.variables = {
            "region": "us-east-1",
            "instance_type": "t3.micro",
            "Tags": {"Name": "web"},
            "subnets": ["10.0.1.0/24", "10.0.2.0/24"],
            "cluster": {"node_groups": [{"name": "general", "size": 3}]},
        }
        self._clear_env()

    def tearDown(self):
        self._clear_env()

    def _clear_env(self):
        for key in list(os.environ):
            if key.startswith("TF_VAR_test_"):
                del os.environ[key]

    def test_exact_match(self):
        """Simple names resolve directly."""
        self.assertEqual(getvar("region", self.variables), "us-east-1")

    def test_var_prefix_is_ignored(self):
        """A leading var. is stripped like a Terraform expression."""
        self.assertEqual(getvar("var.instance_type", self.variables), "t3.micro")

    def test_case_insensitive_fallback(self):
        """Names match case-insensitively when there is no exact key."""
        self.assertEqual(getvar("tags", self.variables), {"Name": "web"})

    def test_environment_variable_wins(self):
        """TF_VAR_ environment variables take precedence."""
        os.environ["TF_VAR_test_region"] = "eu-west-1"
        self.assertEqual(getvar("test_region", {"test_region": "us-east-1"}), "eu-west-1")

    def test_missing_returns_default(self):
        """Unknown names return the default (None unless given)."""
        self.assertIsNone(getvar("missing", self.variables))
        self.assertEqual(getvar("missing", self.variables, default="fallback"), "fallback")

    def test_empty_name_returns_default(self):
        self.assertEqual(getvar("", self.variables, default=1), 1)

    def test_dotted_path(self):
        """Dotted paths walk nested mappings."""
        self.assertEqual(getvar("Tags.Name", self.variables), "web")

    def test_list_index(self):
        """Bracket indices select list items."""
        self.assertEqual(getvar("subnets[1]", self.variables), "10.0.2.0/24")

    def test_mixed_path(self):
        """Indices and dotted keys combine."""
        self.assertEqual(getvar("cluster.node_groups[0].size", self.variables), 3)

    def test_out_of_range_index_returns_default(self):
        self.assertIsNone(getvar("subnets[5]", self.variables))

    def test_index_into_mapping_returns_default(self):
        self.assertIsNone(getvar("Tags[0]", self.variables))

    def test_non_numeric_index_raises(self):
        """Non-numeric list indices are parse errors."""
        with self.assertRaises(TerraformParsingError):
            getvar("subnets[first]", self.variables)

    def test_unbalanced_brackets_raise(self):
        with self.assertRaises(TerraformParsingError):
            getvar("subnets[0", self.variables)


class TestTfvarRead(unittest.TestCase):
    """Test tfvar_read() for JSON and HCL variable files."""

    def test_parse_json_tfvars(self):
        """JSON variable files are read as-is."""
        path = _write_temp(json.dumps({"region": "us-west-2", "count": 3}))
        try:
            result = tfvar_read(path)
            self.assertEqual(result, {"region": "us-west-2", "count": 3})
        finally:
            os.unlink(path)

    def test_parse_hcl_tfvars(self):
        """HCL variable files are parsed with python-hcl2."""
        path = _write_temp('region = "us-west-2"\ninstance_count = 5\n')
        try:
            result = tfvar_read(path)
            self.assertIn("region", result)
            self.assertEqual(result["instance_count"], 5)
        finally:
            os.unlink(path)

    def test_file_not_found(self):
        with self.assertRaises(FileNotFoundError):
            tfvar_read("/nonexistent/path/vars.tfvars")

    def test_invalid_file_raises_parsing_error(self):
        """Unparseable files raise TerraformParsingError with the file path."""
        path = _write_temp("this is not valid JSON or HCL\n@#$%^&*()\n")
        try:
            with self.assertRaises(TerraformParsingError) as context:
                tfvar_read(path)
            self.assertEqual(context.exception.context["filepath"], path)
        finally:
            os.unlink(path)

    def test_merge_varfiles_later_file_wins(self):
        """Later files override keys from earlier ones."""
        first = _write_temp(json.dumps({"region": "us-east-1", "size": 2}))
        second = _write_temp(json.dumps({"region": "eu-west-1"}))
        try:
            result = merge_varfiles([first, second])
            self.assertEqual(result, {"region": "eu-west-1", "size": 2})
        finally:
            os.unlink(first)
            os.unlink(second)

    def test_merge_no_files(self):
        self.assertEqual(merge_varfiles(None), {})


if __name__ == "__main__":
    unittest.main()
