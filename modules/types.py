"""Shared constrained types for resource attributes.

Format-checked strings accept a Terraform interpolation (``${...}``) verbatim
so that outputs of other resources can be wired in as attribute values.
"""

import ipaddress
import json
import re
from typing import Annotated, Dict

from pydantic import AfterValidator, Field

from modules.utils.string_utils import contains_interpolation

AWS_REGION_PATTERN = r"^(us|eu|ap|sa|ca|me|af|il|mx|cn|us-gov)-[a-z]+-\d$"
AVAILABILITY_ZONE_PATTERN = r"^(us|eu|ap|sa|ca|me|af|il|mx|cn|us-gov)-[a-z]+-\d[a-z]$"
ARN_PATTERN = r"^arn:aws[a-zA-Z-]*:[a-z0-9-]+:[a-z0-9-]*:(\d{12})?:.+$"
IAM_ROLE_ARN_PATTERN = r"^arn:aws[a-zA-Z-]*:iam::\d{12}:role/.+$"
KMS_KEY_ARN_PATTERN = r"^arn:aws[a-zA-Z-]*:kms:[a-z0-9-]+:\d{12}:key/[a-f0-9-]+$"
KMS_KEY_REFERENCE_PATTERN = (
    r"^(arn:aws[a-zA-Z-]*:kms:[a-z0-9-]+:\d{12}:(key|alias)/.+"
    r"|alias/[a-zA-Z0-9/_-]+"
    r"|[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12})$"
)


def terraform_pattern(pattern: str, message: str):
    """Build a validator that checks a regex unless the value is an interpolation.

    Args:
        pattern: Regular expression the literal value must match
        message: Error message raised on mismatch; ``{value}`` is substituted

    Returns:
        Validator callable suitable for ``AfterValidator``
    """
    compiled = re.compile(pattern)

    def _check(value: str) -> str:
        if contains_interpolation(value):
            return value
        if not compiled.match(value):
            raise ValueError(message.format(value=value))
        return value

    return _check


def validate_cidr(value: str) -> str:
    """Validate an IPv4 CIDR block (network address with prefix length)."""
    if contains_interpolation(value):
        return value
    if "/" not in value:
        raise ValueError(f"invalid CIDR block: {value}")
    try:
        ipaddress.IPv4Network(value, strict=True)
    except ValueError:
        raise ValueError(f"invalid CIDR block: {value}") from None
    return value


def cidr_prefix_length(value: str) -> int:
    """Return the prefix length of a CIDR string."""
    return int(value.split("/", 1)[1])


def cidr_prefix_between(minimum: int, maximum: int, message: str):
    """Build a validator enforcing the CIDR prefix length range."""

    def _check(value: str) -> str:
        if contains_interpolation(value):
            return value
        prefix = cidr_prefix_length(value)
        if prefix < minimum or prefix > maximum:
            raise ValueError(message.format(value=value, prefix=prefix))
        return value

    return _check


def validate_json_object(value: str, label: str) -> str:
    """Check that a string holds a JSON object document.

    Args:
        value: JSON text
        label: Attribute name used in the error message

    Raises:
        ValueError: If the text is not valid JSON or not an object
    """
    if contains_interpolation(value):
        return value
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise ValueError(f"{label} must be valid JSON: {e.msg}") from None
    if not isinstance(parsed, dict):
        raise ValueError(f"{label} must be a JSON object")
    return value


def _json_document(value: str) -> str:
    return validate_json_object(value, "policy document")


CidrBlock = Annotated[str, AfterValidator(validate_cidr)]

AwsRegion = Annotated[
    str,
    AfterValidator(terraform_pattern(AWS_REGION_PATTERN, "invalid AWS region: {value}")),
]

AvailabilityZone = Annotated[
    str,
    AfterValidator(
        terraform_pattern(AVAILABILITY_ZONE_PATTERN, "invalid availability zone: {value}")
    ),
]

Arn = Annotated[
    str, AfterValidator(terraform_pattern(ARN_PATTERN, "invalid ARN: {value}"))
]

IamRoleArn = Annotated[
    str,
    AfterValidator(
        terraform_pattern(IAM_ROLE_ARN_PATTERN, "invalid IAM role ARN: {value}")
    ),
]

KmsKeyArn = Annotated[
    str,
    AfterValidator(terraform_pattern(KMS_KEY_ARN_PATTERN, "invalid KMS key ARN: {value}")),
]

KmsKeyReference = Annotated[
    str,
    AfterValidator(
        terraform_pattern(KMS_KEY_REFERENCE_PATTERN, "Invalid KMS key ID format: {value}")
    ),
]

Port = Annotated[int, Field(ge=0, le=65535)]

AwsTags = Dict[str, str]

JsonDocument = Annotated[str, AfterValidator(_json_document)]


def _vpc_cidr_size(value: str) -> str:
    if contains_interpolation(value):
        return value
    prefix = cidr_prefix_length(value)
    if prefix < 16:
        raise ValueError(f"VPC CIDR block {value} is too large (largest allowed is /16)")
    if prefix > 28:
        raise ValueError(f"VPC CIDR block {value} is too small (smallest allowed is /28)")
    return value


VpcCidrBlock = Annotated[
    str, AfterValidator(validate_cidr), AfterValidator(_vpc_cidr_size)
]

SubnetCidrBlock = Annotated[
    str,
    AfterValidator(validate_cidr),
    AfterValidator(
        cidr_prefix_between(
            16, 28, "Subnet CIDR block {value} must be between /16 and /28"
        )
    ),
]
