"""
Security resources: IAM roles, KMS keys and Secrets Manager secrets.
"""

import json
import re
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import Field, field_validator, model_validator

from modules.attributes import BaseAttributes
from modules.registry import register_resource
from modules.types import Arn, AwsTags, KmsKeyReference
from modules.utils.string_utils import contains_interpolation

from . import make_reference

PolicyDocument = Union[Dict[str, Any], str]


def _policy_dict(value: PolicyDocument, label: str) -> Dict[str, Any]:
    """Parse a policy given either as a mapping or as JSON text."""
    if isinstance(value, dict):
        return value
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {label}: {e.msg}") from None
    if not isinstance(parsed, dict):
        raise ValueError(f"{label} must be a JSON object")
    return parsed


def _policy_json(value: PolicyDocument) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _statements(policy: Dict[str, Any]) -> List[Dict[str, Any]]:
    statements = policy.get("Statement") or []
    if isinstance(statements, dict):
        return [statements]
    return list(statements)


def _trust_policy(
    principal: Dict[str, Any], action: str = "sts:AssumeRole"
) -> Dict[str, Any]:
    return {
        "Version": "2012-10-17",
        "Statement": [{"Effect": "Allow", "Principal": principal, "Action": action}],
    }


def service_trust_policy(service: str) -> Dict[str, Any]:
    """Trust policy letting an AWS service (``ec2.amazonaws.com``) assume the role."""
    return _trust_policy({"Service": service})


def ec2_trust_policy() -> Dict[str, Any]:
    return service_trust_policy("ec2.amazonaws.com")


def lambda_trust_policy() -> Dict[str, Any]:
    return service_trust_policy("lambda.amazonaws.com")


def ecs_task_trust_policy() -> Dict[str, Any]:
    return service_trust_policy("ecs-tasks.amazonaws.com")


def cross_account_trust_policy(account_id: str) -> Dict[str, Any]:
    return _trust_policy({"AWS": f"arn:aws:iam::{account_id}:root"})


def saml_trust_policy(provider_arn: str) -> Dict[str, Any]:
    return _trust_policy({"Federated": provider_arn}, action="sts:AssumeRoleWithSAML")


class IamRoleAttributes(BaseAttributes):
    """Attributes of an IAM role.

    ``assume_role_policy`` and each entry of ``inline_policies`` may be given
    as a mapping or as JSON text; both are written as JSON strings.
    """

    resource_type = "aws_iam_role"

    name: Optional[str] = None
    name_prefix: Optional[str] = None
    path: str = "/"
    description: Optional[str] = None
    assume_role_policy: PolicyDocument
    force_detach_policies: bool = False
    max_session_duration: int = Field(default=3600, ge=3600, le=43200)
    permissions_boundary: Optional[Arn] = None
    managed_policy_arns: List[str] = Field(default_factory=list)
    inline_policies: Dict[str, PolicyDocument] = Field(default_factory=dict)
    tags: AwsTags = Field(default_factory=dict)

    @field_validator("path")
    @classmethod
    def check_path(cls, value: str) -> str:
        if not (value.startswith("/") and value.endswith("/")):
            raise ValueError(f"IAM path must begin and end with '/': {value}")
        return value

    @model_validator(mode="after")
    def check_role(self):
        if self.name and self.name_prefix:
            raise ValueError("Cannot specify both 'name' and 'name_prefix'")
        if not (
            isinstance(self.assume_role_policy, str)
            and contains_interpolation(self.assume_role_policy)
        ):
            policy = _policy_dict(self.assume_role_policy, "assume role policy")
            if not _statements(policy):
                raise ValueError("Assume role policy must have at least one statement")
        for policy_name, document in self.inline_policies.items():
            if isinstance(document, str) and contains_interpolation(document):
                continue
            _policy_dict(document, f"inline policy '{policy_name}'")
        return self

    def _principals(self, key: str) -> List[str]:
        if isinstance(self.assume_role_policy, str) and contains_interpolation(
            self.assume_role_policy
        ):
            return []
        found = []
        policy = _policy_dict(self.assume_role_policy, "assume role policy")
        for statement in _statements(policy):
            principal = statement.get("Principal")
            if not isinstance(principal, dict) or key not in principal:
                continue
            value = principal[key]
            found.extend(value if isinstance(value, list) else [value])
        return found

    @property
    def service_principal(self) -> Optional[str]:
        services = self._principals("Service")
        return services[0] if services else None

    @property
    def trust_policy_type(self) -> str:
        if self._principals("Service"):
            return "service"
        if self._principals("Federated"):
            return "federated"
        if self._principals("AWS"):
            return "aws_account"
        return "unknown"


@register_resource("security")
def aws_iam_role(synth, name, attributes=None):
    attrs = IamRoleAttributes.build(attributes)
    with synth.resource("aws_iam_role", name) as role:
        role.name = attrs.name
        role.name_prefix = attrs.name_prefix
        role.path = attrs.path
        role.description = attrs.description
        role.assume_role_policy = _policy_json(attrs.assume_role_policy)
        role.force_detach_policies = attrs.force_detach_policies
        role.max_session_duration = attrs.max_session_duration
        role.permissions_boundary = attrs.permissions_boundary
        if attrs.managed_policy_arns:
            role.managed_policy_arns = attrs.managed_policy_arns
        for policy_name, document in attrs.inline_policies.items():
            role.block(
                "inline_policy", {"name": policy_name, "policy": _policy_json(document)}
            )
        role.tags = attrs.tags
    return make_reference(
        synth,
        "aws_iam_role",
        name,
        attrs,
        ["id", "arn", "name", "unique_id", "create_date"],
        computed={
            "service_principal": attrs.service_principal,
            "is_service_role": attrs.trust_policy_type == "service",
            "is_federated_role": attrs.trust_policy_type == "federated",
            "trust_policy_type": attrs.trust_policy_type,
        },
    )


KmsKeySpec = Literal[
    "SYMMETRIC_DEFAULT",
    "RSA_2048",
    "RSA_3072",
    "RSA_4096",
    "ECC_NIST_P256",
    "ECC_NIST_P384",
    "ECC_NIST_P521",
    "ECC_SECG_P256K1",
    "HMAC_224",
    "HMAC_256",
    "HMAC_384",
    "HMAC_512",
    "SM2",
]

# Monthly USD per customer managed key
KMS_KEY_MONTHLY_COST = 1.00


class KmsKeyAttributes(BaseAttributes):
    """Attributes of a KMS key.

    Rotation only exists for symmetric keys; asking for it on any other key
    spec turns it off instead of failing.
    """

    resource_type = "aws_kms_key"

    description: str
    key_usage: Literal["ENCRYPT_DECRYPT", "SIGN_VERIFY", "GENERATE_VERIFY_MAC"] = (
        "ENCRYPT_DECRYPT"
    )
    key_spec: KmsKeySpec = "SYMMETRIC_DEFAULT"
    policy: Optional[str] = None
    deletion_window_in_days: Optional[int] = Field(default=None, ge=7, le=30)
    enable_key_rotation: bool = False
    rotation_period_in_days: Optional[int] = Field(default=None, ge=90, le=2560)
    multi_region: bool = False
    bypass_policy_lockout_safety_check: Optional[bool] = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def disable_asymmetric_rotation(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if data.get("key_spec", "SYMMETRIC_DEFAULT") != "SYMMETRIC_DEFAULT":
            data = {**data, "enable_key_rotation": False}
        return data

    @model_validator(mode="after")
    def check_usage(self):
        spec = self.key_spec
        if self.key_usage == "SIGN_VERIFY" and (
            spec == "SYMMETRIC_DEFAULT" or spec.startswith("HMAC")
        ):
            raise ValueError(f"Key spec {spec} is not valid for SIGN_VERIFY usage")
        if self.key_usage == "ENCRYPT_DECRYPT" and (
            spec.startswith("ECC") or spec.startswith("HMAC")
        ):
            raise ValueError(f"Key spec {spec} is not valid for ENCRYPT_DECRYPT usage")
        if self.key_usage == "GENERATE_VERIFY_MAC" and not spec.startswith("HMAC"):
            raise ValueError(
                f"Key spec {spec} is not valid for GENERATE_VERIFY_MAC usage"
            )
        if self.policy is not None and not contains_interpolation(self.policy):
            _policy_dict(self.policy, "key policy")
        return self

    @property
    def is_symmetric(self) -> bool:
        return self.key_spec == "SYMMETRIC_DEFAULT"

    @property
    def key_algorithm_family(self) -> str:
        if self.is_symmetric:
            return "AES"
        return self.key_spec.split("_", 1)[0]

    @property
    def estimated_monthly_cost(self) -> float:
        return KMS_KEY_MONTHLY_COST * (2 if self.multi_region else 1)


@register_resource("security")
def aws_kms_key(synth, name, attributes=None):
    attrs = KmsKeyAttributes.build(attributes)
    with synth.resource("aws_kms_key", name) as key:
        key.description = attrs.description
        key.key_usage = attrs.key_usage
        key.customer_master_key_spec = attrs.key_spec
        key.policy = attrs.policy
        key.deletion_window_in_days = attrs.deletion_window_in_days
        key.enable_key_rotation = attrs.enable_key_rotation
        if attrs.enable_key_rotation:
            key.rotation_period_in_days = attrs.rotation_period_in_days
        key.multi_region = attrs.multi_region
        key.bypass_policy_lockout_safety_check = (
            attrs.bypass_policy_lockout_safety_check
        )
        key.tags = attrs.tags
    return make_reference(
        synth,
        "aws_kms_key",
        name,
        attrs,
        ["id", "arn", "key_id", "tags_all"],
        computed={
            "is_symmetric": attrs.is_symmetric,
            "is_asymmetric": not attrs.is_symmetric,
            "supports_encryption": attrs.key_usage == "ENCRYPT_DECRYPT",
            "supports_signing": attrs.key_usage == "SIGN_VERIFY",
            "supports_rotation": attrs.is_symmetric,
            "key_algorithm_family": attrs.key_algorithm_family,
            "estimated_monthly_cost": attrs.estimated_monthly_cost,
        },
    )


SECRET_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9/_+=.@-]+$")


class SecretReplica(BaseAttributes):
    region: str
    kms_key_id: Optional[KmsKeyReference] = None


class SecretsManagerSecretAttributes(BaseAttributes):
    resource_type = "aws_secretsmanager_secret"

    name: Optional[str] = None
    name_prefix: Optional[str] = None
    description: Optional[str] = None
    kms_key_id: Optional[KmsKeyReference] = None
    policy: Optional[str] = None
    recovery_window_in_days: Optional[int] = None
    force_overwrite_replica_secret: bool = False
    replica: List[SecretReplica] = Field(default_factory=list)
    tags: AwsTags = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None or contains_interpolation(value):
            return value
        if len(value) > 512:
            raise ValueError(f"Secret name too long: {len(value)} characters (max 512)")
        if value.startswith("/") or value.endswith("/"):
            raise ValueError(f"Secret name cannot start or end with slash: {value}")
        if "//" in value:
            raise ValueError(f"Secret name cannot contain consecutive slashes: {value}")
        if not SECRET_NAME_PATTERN.match(value):
            raise ValueError(f"Secret name contains invalid characters: {value}")
        return value

    @field_validator("recovery_window_in_days")
    @classmethod
    def check_recovery_window(cls, value: Optional[int]) -> Optional[int]:
        # 0 forces deletion without recovery
        if value is not None and value != 0 and not 7 <= value <= 30:
            raise ValueError("recovery_window_in_days must be 0 or between 7 and 30")
        return value

    @model_validator(mode="after")
    def check_secret(self):
        if self.name and self.name_prefix:
            raise ValueError("Cannot specify both 'name' and 'name_prefix'")
        if self.policy is not None and not contains_interpolation(self.policy):
            policy = _policy_dict(self.policy, "secret policy")
            if "Version" not in policy or "Statement" not in policy:
                raise ValueError(
                    "Secret policy should have Version and Statement fields"
                )
        regions = [replica.region for replica in self.replica]
        if len(set(regions)) != len(regions):
            raise ValueError("Duplicate regions found in replica configuration")
        return self

    @property
    def secret_scope(self) -> str:
        if self.replica:
            return f"Multi-region secret replicated to {len(self.replica)} regions"
        return "Single-region secret"

    @property
    def encryption_details(self) -> str:
        if self.kms_key_id:
            return f"Custom KMS key: {self.kms_key_id}"
        return "AWS managed key (aws/secretsmanager)"


@register_resource("security")
def aws_secretsmanager_secret(synth, name, attributes=None):
    attrs = SecretsManagerSecretAttributes.build(attributes)
    with synth.resource("aws_secretsmanager_secret", name) as secret:
        secret.name = attrs.name
        secret.name_prefix = attrs.name_prefix
        secret.description = attrs.description
        secret.kms_key_id = attrs.kms_key_id
        secret.policy = attrs.policy
        secret.recovery_window_in_days = attrs.recovery_window_in_days
        if attrs.force_overwrite_replica_secret:
            secret.force_overwrite_replica_secret = True
        for replica in attrs.replica:
            secret.block("replica", replica.compact_dict())
        secret.tags = attrs.tags
    return make_reference(
        synth,
        "aws_secretsmanager_secret",
        name,
        attrs,
        ["id", "arn", "name", "replica", "tags_all"],
        computed={
            "is_cross_region": bool(attrs.replica),
            "replica_count": len(attrs.replica),
            "uses_custom_kms_key": attrs.kms_key_id is not None,
            "has_resource_policy": attrs.policy is not None,
            "recovery_period_days": attrs.recovery_window_in_days
            if attrs.recovery_window_in_days is not None
            else 30,
            "replication_regions": [replica.region for replica in attrs.replica],
            "secret_scope": attrs.secret_scope,
            "encryption_details": attrs.encryption_details,
        },
    )
