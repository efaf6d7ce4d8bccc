"""
Container resources: EKS clusters, node groups and add-ons, ECS clusters and
ECR repositories.
"""

import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from modules.attributes import BaseAttributes
from modules.registry import register_resource
from modules.types import (
    AwsTags,
    IamRoleArn,
    KmsKeyArn,
    validate_cidr,
    validate_json_object,
)
from modules.utils.string_utils import contains_interpolation

from . import make_reference
from .compute import LaunchTemplateSpecification

EKS_VERSIONS = ("1.24", "1.25", "1.26", "1.27", "1.28", "1.29", "1.30", "1.31")
EKS_LOG_TYPES = Literal[
    "api", "audit", "authenticator", "controllerManager", "scheduler"
]

PRIVATE_SERVICE_CIDR = re.compile(
    r"^(10\.\d{1,3}|172\.(1[6-9]|2[0-9]|3[0-1])|192\.168)\.\d{1,3}\.\d{1,3}/\d{1,2}$"
)


class EksEncryptionProvider(BaseAttributes):
    key_arn: KmsKeyArn


class EksEncryptionConfig(BaseAttributes):
    resources: List[str] = Field(
        default_factory=lambda: ["secrets"], min_length=1, max_length=1
    )
    provider: EksEncryptionProvider


class EksVpcConfig(BaseAttributes):
    subnet_ids: List[str]
    security_group_ids: List[str] = Field(default_factory=list)
    endpoint_private_access: bool = False
    endpoint_public_access: bool = True
    public_access_cidrs: List[str] = Field(default_factory=lambda: ["0.0.0.0/0"])

    @field_validator("public_access_cidrs")
    @classmethod
    def check_cidrs(cls, value: List[str]) -> List[str]:
        return [validate_cidr(cidr) for cidr in value]

    @model_validator(mode="after")
    def check_access(self):
        if len(self.subnet_ids) < 2:
            raise ValueError(
                "EKS cluster requires at least 2 subnets in different "
                "availability zones"
            )
        if not self.endpoint_public_access and not self.endpoint_private_access:
            raise ValueError(
                "At least one of endpoint_public_access or "
                "endpoint_private_access must be true"
            )
        return self

    def block_dict(self) -> Dict[str, Any]:
        block = {
            "subnet_ids": self.subnet_ids,
            "endpoint_private_access": self.endpoint_private_access,
            "endpoint_public_access": self.endpoint_public_access,
        }
        if self.security_group_ids:
            block["security_group_ids"] = self.security_group_ids
        if self.endpoint_public_access:
            block["public_access_cidrs"] = self.public_access_cidrs
        return block


class KubernetesNetworkConfig(BaseAttributes):
    service_ipv4_cidr: Optional[str] = None
    ip_family: Literal["ipv4", "ipv6"] = "ipv4"

    @field_validator("service_ipv4_cidr")
    @classmethod
    def check_service_cidr(cls, value: Optional[str]) -> Optional[str]:
        if value is None or contains_interpolation(value):
            return value
        if not PRIVATE_SERVICE_CIDR.match(value):
            raise ValueError(
                f"service_ipv4_cidr {value} must be within 10.0.0.0/8, "
                "172.16.0.0/12 or 192.168.0.0/16"
            )
        return value


class EksClusterAttributes(BaseAttributes):
    resource_type = "aws_eks_cluster"

    name: Optional[str] = None
    role_arn: IamRoleArn
    vpc_config: EksVpcConfig
    version: str = "1.28"
    enabled_cluster_log_types: List[EKS_LOG_TYPES] = Field(default_factory=list)
    encryption_config: List[EksEncryptionConfig] = Field(default_factory=list)
    kubernetes_network_config: Optional[KubernetesNetworkConfig] = None
    tags: AwsTags = Field(default_factory=dict)

    @field_validator("version")
    @classmethod
    def check_version(cls, value: str) -> str:
        if value not in EKS_VERSIONS:
            raise ValueError(
                f"Unsupported EKS version {value}. "
                f"Supported versions: {', '.join(EKS_VERSIONS)}"
            )
        return value


@register_resource("containers")
def aws_eks_cluster(synth, name, attributes=None):
    """Declare an EKS control plane.

    ``public_access_cidrs`` is only written while the public endpoint is
    enabled. The cluster name defaults to the resource name when not given.
    """
    attrs = EksClusterAttributes.build(attributes)
    with synth.resource("aws_eks_cluster", name) as cluster:
        cluster.name = attrs.name or name
        cluster.role_arn = attrs.role_arn
        cluster.version = attrs.version
        cluster.block("vpc_config", attrs.vpc_config.block_dict())
        if attrs.enabled_cluster_log_types:
            cluster.enabled_cluster_log_types = attrs.enabled_cluster_log_types
        for encryption in attrs.encryption_config:
            cluster.block("encryption_config", encryption.to_dict())
        if attrs.kubernetes_network_config:
            cluster.block(
                "kubernetes_network_config",
                attrs.kubernetes_network_config.compact_dict(),
            )
        cluster.tags = attrs.tags
    return make_reference(
        synth,
        "aws_eks_cluster",
        name,
        attrs,
        [
            "id",
            "arn",
            "name",
            "endpoint",
            "platform_version",
            "version",
            "status",
            "role_arn",
            "vpc_config",
            "identity",
            "certificate_authority",
            "created_at",
        ],
        paths={"certificate_authority_data": "certificate_authority.0.data"},
        computed={
            "encryption_enabled": bool(attrs.encryption_config),
            "logging_enabled": bool(attrs.enabled_cluster_log_types),
            "private_endpoint": attrs.vpc_config.endpoint_private_access,
            "public_endpoint": attrs.vpc_config.endpoint_public_access,
            "log_types": list(attrs.enabled_cluster_log_types),
        },
    )


EKS_AMI_TYPES = Literal[
    "AL2_x86_64",
    "AL2_x86_64_GPU",
    "AL2_ARM_64",
    "CUSTOM",
    "BOTTLEROCKET_ARM_64",
    "BOTTLEROCKET_x86_64",
    "BOTTLEROCKET_ARM_64_NVIDIA",
    "BOTTLEROCKET_x86_64_NVIDIA",
    "AL2023_x86_64_STANDARD",
    "AL2023_ARM_64_STANDARD",
]

# Graviton families carry a "g" after the generation digit (t4g, m6gd, c7gn)
ARM_INSTANCE_FAMILY = re.compile(r"^(a1|[a-z]+\d+[a-z]*g[a-z]*)$")
GPU_INSTANCE_FAMILY = re.compile(r"^(p\d|g\d|inf\d|trn\d|dl\d)")


def _family(instance_type: str) -> str:
    return instance_type.split(".", 1)[0]


class NodeGroupScalingConfig(BaseAttributes):
    desired_size: int = Field(default=2, ge=0)
    min_size: int = Field(default=1, ge=0)
    max_size: int = Field(default=4, ge=1)

    @model_validator(mode="after")
    def check_sizes(self):
        if self.min_size > self.max_size:
            raise ValueError(
                f"min_size ({self.min_size}) cannot be greater than "
                f"max_size ({self.max_size})"
            )
        if not self.min_size <= self.desired_size <= self.max_size:
            raise ValueError(
                f"desired_size ({self.desired_size}) must be between min_size "
                f"({self.min_size}) and max_size ({self.max_size})"
            )
        return self


class NodeGroupUpdateConfig(BaseAttributes):
    max_unavailable: Optional[int] = Field(default=None, ge=1)
    max_unavailable_percentage: Optional[int] = Field(default=None, ge=1, le=100)

    @model_validator(mode="after")
    def check_exclusive(self):
        if (
            self.max_unavailable is not None
            and self.max_unavailable_percentage is not None
        ):
            raise ValueError(
                "Cannot specify both max_unavailable and max_unavailable_percentage"
            )
        return self


class NodeGroupRemoteAccess(BaseAttributes):
    ec2_ssh_key: Optional[str] = None
    source_security_group_ids: List[str] = Field(default_factory=list)


class NodeGroupTaint(BaseAttributes):
    key: str
    value: Optional[str] = None
    effect: Literal["NO_SCHEDULE", "NO_EXECUTE", "PREFER_NO_SCHEDULE"]


class EksNodeGroupAttributes(BaseAttributes):
    resource_type = "aws_eks_node_group"

    cluster_name: str
    node_role_arn: IamRoleArn
    subnet_ids: List[str] = Field(min_length=1)
    node_group_name: Optional[str] = None
    scaling_config: NodeGroupScalingConfig = Field(
        default_factory=NodeGroupScalingConfig
    )
    update_config: Optional[NodeGroupUpdateConfig] = None
    instance_types: List[str] = Field(default_factory=lambda: ["t3.medium"])
    capacity_type: Literal["ON_DEMAND", "SPOT"] = "ON_DEMAND"
    ami_type: EKS_AMI_TYPES = "AL2_x86_64"
    disk_size: Optional[int] = Field(default=None, ge=20, le=16384)
    remote_access: Optional[NodeGroupRemoteAccess] = None
    launch_template: Optional[LaunchTemplateSpecification] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    taints: List[NodeGroupTaint] = Field(default_factory=list)
    version: Optional[str] = None
    release_version: Optional[str] = None
    force_update_version: Optional[bool] = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_ami_instance_types(self):
        families = [
            _family(t) for t in self.instance_types if not contains_interpolation(t)
        ]
        if "ARM" in self.ami_type and not all(
            ARM_INSTANCE_FAMILY.match(f) for f in families
        ):
            raise ValueError("ARM AMI types require ARM-compatible instance types")
        if ("GPU" in self.ami_type or "NVIDIA" in self.ami_type) and not all(
            GPU_INSTANCE_FAMILY.match(f) for f in families
        ):
            raise ValueError("GPU AMI types require GPU instance types")
        return self


@register_resource("containers")
def aws_eks_node_group(synth, name, attributes=None):
    """Declare a managed EKS node group.

    Taints become repeated ``taint`` blocks; ``scaling_config`` is always
    written with its defaults.
    """
    attrs = EksNodeGroupAttributes.build(attributes)
    with synth.resource("aws_eks_node_group", name) as group:
        group.cluster_name = attrs.cluster_name
        group.node_group_name = attrs.node_group_name
        group.node_role_arn = attrs.node_role_arn
        group.subnet_ids = attrs.subnet_ids
        group.block("scaling_config", attrs.scaling_config.to_dict())
        if attrs.update_config:
            group.block("update_config", attrs.update_config.compact_dict())
        group.instance_types = attrs.instance_types
        group.capacity_type = attrs.capacity_type
        group.ami_type = attrs.ami_type
        group.disk_size = attrs.disk_size
        if attrs.remote_access:
            group.block("remote_access", attrs.remote_access.compact_dict())
        if attrs.launch_template:
            group.block("launch_template", attrs.launch_template.compact_dict())
        if attrs.labels:
            group.labels = attrs.labels
        for taint in attrs.taints:
            group.block("taint", taint.compact_dict())
        group.version = attrs.version
        group.release_version = attrs.release_version
        group.force_update_version = attrs.force_update_version
        group.tags = attrs.tags
    return make_reference(
        synth,
        "aws_eks_node_group",
        name,
        attrs,
        [
            "id",
            "arn",
            "cluster_name",
            "node_group_name",
            "node_role_arn",
            "subnet_ids",
            "status",
            "capacity_type",
            "instance_types",
            "disk_size",
            "remote_access",
            "scaling_config",
            "update_config",
            "launch_template",
            "version",
            "release_version",
            "resources",
            "tags_all",
        ],
        computed={
            "spot_instances": attrs.capacity_type == "SPOT",
            "custom_ami": attrs.ami_type == "CUSTOM",
            "has_remote_access": attrs.remote_access is not None,
            "has_taints": bool(attrs.taints),
            "has_labels": bool(attrs.labels),
            "ami_type": attrs.ami_type,
            "desired_size": attrs.scaling_config.desired_size,
        },
    )


EKS_ADDONS = {
    "vpc-cni": {
        "versions": (
            "v1.12.6-eksbuild.2",
            "v1.12.5-eksbuild.2",
            "v1.12.2-eksbuild.1",
            "v1.11.4-eksbuild.1",
        ),
        "service_account": "aws-node",
        "namespace": "kube-system",
    },
    "coredns": {
        "versions": (
            "v1.10.1-eksbuild.7",
            "v1.10.1-eksbuild.6",
            "v1.10.1-eksbuild.4",
            "v1.9.3-eksbuild.11",
        ),
        "service_account": "coredns",
        "namespace": "kube-system",
    },
    "kube-proxy": {
        "versions": (
            "v1.29.0-eksbuild.3",
            "v1.28.5-eksbuild.3",
            "v1.27.9-eksbuild.3",
            "v1.26.12-eksbuild.3",
        ),
        "service_account": "kube-proxy",
        "namespace": "kube-system",
    },
    "aws-ebs-csi-driver": {
        "versions": (
            "v1.28.0-eksbuild.1",
            "v1.27.0-eksbuild.1",
            "v1.26.1-eksbuild.1",
            "v1.25.0-eksbuild.1",
        ),
        "service_account": "ebs-csi-controller-sa",
        "namespace": "kube-system",
    },
    "aws-efs-csi-driver": {
        "versions": (
            "v1.7.4-eksbuild.1",
            "v1.7.1-eksbuild.1",
            "v1.6.0-eksbuild.1",
            "v1.5.9-eksbuild.1",
        ),
        "service_account": "efs-csi-controller-sa",
        "namespace": "kube-system",
    },
    "aws-guardduty-agent": {
        "versions": ("v1.4.0-eksbuild.1", "v1.3.0-eksbuild.1", "v1.2.0-eksbuild.1"),
        "service_account": "aws-guardduty-agent",
        "namespace": "amazon-guardduty",
    },
    "aws-mountpoint-s3-csi-driver": {
        "versions": ("v1.0.0-eksbuild.1",),
        "service_account": "s3-csi-driver-sa",
        "namespace": "kube-system",
    },
    "snapshot-controller": {
        "versions": ("v6.3.2-eksbuild.1", "v6.2.2-eksbuild.1"),
        "service_account": "snapshot-controller",
        "namespace": "kube-system",
    },
    "adot": {
        "versions": ("v0.90.0-eksbuild.1", "v0.88.0-eksbuild.1"),
        "service_account": "aws-otel-sa",
        "namespace": "aws-otel-system",
    },
}

IAM_ROLE_ADDONS = (
    "vpc-cni",
    "aws-ebs-csi-driver",
    "aws-efs-csi-driver",
    "aws-guardduty-agent",
    "aws-mountpoint-s3-csi-driver",
    "adot",
)
STORAGE_ADDONS = (
    "aws-ebs-csi-driver",
    "aws-efs-csi-driver",
    "aws-mountpoint-s3-csi-driver",
    "snapshot-controller",
)

ConflictResolution = Literal["OVERWRITE", "NONE", "PRESERVE"]


class EksAddonAttributes(BaseAttributes):
    resource_type = "aws_eks_addon"

    cluster_name: str
    addon_name: str
    addon_version: Optional[str] = None
    service_account_role_arn: Optional[IamRoleArn] = None
    resolve_conflicts: Optional[ConflictResolution] = None
    resolve_conflicts_on_create: Optional[ConflictResolution] = None
    resolve_conflicts_on_update: Optional[ConflictResolution] = None
    configuration_values: Optional[str] = None
    preserve: bool = True
    tags: AwsTags = Field(default_factory=dict)

    @field_validator("addon_name")
    @classmethod
    def check_addon(cls, value: str) -> str:
        if value not in EKS_ADDONS:
            raise ValueError(
                f"Unsupported EKS addon '{value}'. "
                f"Supported addons: {', '.join(EKS_ADDONS)}"
            )
        return value

    @model_validator(mode="after")
    def check_addon_settings(self):
        versions = EKS_ADDONS[self.addon_name]["versions"]
        if self.addon_version and self.addon_version not in versions:
            raise ValueError(
                f"Invalid version '{self.addon_version}' "
                f"for addon '{self.addon_name}'. "
                f"Supported versions: {', '.join(versions)}"
            )
        if self.configuration_values is not None:
            validate_json_object(self.configuration_values, "configuration_values")
        if self.resolve_conflicts and self.resolve_conflicts_on_create:
            raise ValueError(
                "Cannot specify both resolve_conflicts and resolve_conflicts_on_create"
            )
        if self.resolve_conflicts and self.resolve_conflicts_on_update:
            raise ValueError(
                "Cannot specify both resolve_conflicts and resolve_conflicts_on_update"
            )
        return self


@register_resource("containers")
def aws_eks_addon(synth, name, attributes=None):
    attrs = EksAddonAttributes.build(attributes)
    addon = EKS_ADDONS[attrs.addon_name]
    with synth.resource("aws_eks_addon", name) as resource:
        resource.cluster_name = attrs.cluster_name
        resource.addon_name = attrs.addon_name
        resource.addon_version = attrs.addon_version
        resource.service_account_role_arn = attrs.service_account_role_arn
        if attrs.resolve_conflicts_on_create or attrs.resolve_conflicts_on_update:
            resource.resolve_conflicts_on_create = attrs.resolve_conflicts_on_create
            resource.resolve_conflicts_on_update = attrs.resolve_conflicts_on_update
        else:
            resource.resolve_conflicts = attrs.resolve_conflicts or "NONE"
        resource.configuration_values = attrs.configuration_values
        resource.preserve = attrs.preserve
        resource.tags = attrs.tags
    return make_reference(
        synth,
        "aws_eks_addon",
        name,
        attrs,
        [
            "id",
            "arn",
            "addon_name",
            "addon_version",
            "cluster_name",
            "configuration_values",
            "created_at",
            "modified_at",
            "service_account_role_arn",
            "tags_all",
        ],
        computed={
            "service_account_name": addon["service_account"],
            "namespace": addon["namespace"],
            "requires_iam_role": attrs.addon_name in IAM_ROLE_ADDONS,
            "is_compute_addon": attrs.addon_name in ("vpc-cni", "kube-proxy"),
            "is_storage_addon": attrs.addon_name in STORAGE_ADDONS,
            "is_networking_addon": attrs.addon_name in ("vpc-cni", "coredns"),
            "is_observability_addon": (
                attrs.addon_name in ("adot", "aws-guardduty-agent")
            ),
        },
    )


class EcsClusterSetting(BaseAttributes):
    name: Literal["containerInsights"]
    value: Literal["enabled", "disabled", "enhanced"]


class EcsExecuteCommandLogConfiguration(BaseAttributes):
    cloud_watch_encryption_enabled: Optional[bool] = None
    cloud_watch_log_group_name: Optional[str] = None
    s3_bucket_name: Optional[str] = None
    s3_bucket_encryption_enabled: Optional[bool] = None
    s3_key_prefix: Optional[str] = None


class EcsExecuteCommandConfiguration(BaseAttributes):
    kms_key_id: Optional[str] = None
    logging: Optional[Literal["DEFAULT", "NONE", "OVERRIDE"]] = None
    log_configuration: Optional[EcsExecuteCommandLogConfiguration] = None


class EcsClusterConfiguration(BaseAttributes):
    execute_command_configuration: Optional[EcsExecuteCommandConfiguration] = None


class EcsServiceConnectDefaults(BaseAttributes):
    namespace: str


class EcsClusterAttributes(BaseAttributes):
    """Attributes of an ECS cluster.

    ``container_insights_enabled`` is a shorthand for the
    ``containerInsights`` setting and must agree with it when both are given.
    Capacity providers are ``FARGATE``, ``FARGATE_SPOT`` or an ECS capacity
    provider ARN.
    """

    resource_type = "aws_ecs_cluster"

    name: str
    capacity_providers: List[str] = Field(default_factory=list)
    container_insights_enabled: Optional[bool] = None
    setting: List[EcsClusterSetting] = Field(default_factory=list)
    configuration: Optional[EcsClusterConfiguration] = None
    service_connect_defaults: Optional[EcsServiceConnectDefaults] = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_cluster(self):
        for provider in self.capacity_providers:
            if provider not in ("FARGATE", "FARGATE_SPOT") and not provider.startswith(
                "arn:aws:ecs:"
            ):
                raise ValueError(
                    f"Invalid capacity provider: {provider}. "
                    "Must be FARGATE, FARGATE_SPOT, or an ARN"
                )
        if self.container_insights_enabled is not None:
            expected = "enabled" if self.container_insights_enabled else "disabled"
            for setting in self.setting:
                if setting.value != expected:
                    raise ValueError(
                        "container_insights_enabled conflicts with setting value"
                    )
        return self

    @property
    def insights_enabled(self) -> bool:
        if self.container_insights_enabled is not None:
            return self.container_insights_enabled
        return any(setting.value != "disabled" for setting in self.setting)

    @property
    def estimated_monthly_cost(self) -> float:
        insights = 5.0 if self.insights_enabled else 0.0
        service_connect = 2.0 if self.service_connect_defaults else 0.0
        return insights + service_connect

    def arn_pattern(self, region: str = "*", account_id: str = "*") -> str:
        return f"arn:aws:ecs:{region}:{account_id}:cluster/{self.name}"


@register_resource("containers")
def aws_ecs_cluster(synth, name, attributes=None):
    attrs = EcsClusterAttributes.build(attributes)
    with synth.resource("aws_ecs_cluster", name) as cluster:
        cluster.name = attrs.name
        if attrs.setting:
            for setting in attrs.setting:
                cluster.block("setting", setting.to_dict())
        elif attrs.container_insights_enabled is not None:
            cluster.block(
                "setting",
                {
                    "name": "containerInsights",
                    "value": (
                        "enabled" if attrs.container_insights_enabled else "disabled"
                    ),
                },
            )
        if attrs.configuration:
            cluster.block("configuration", attrs.configuration.compact_dict())
        if attrs.service_connect_defaults:
            cluster.block(
                "service_connect_defaults", attrs.service_connect_defaults.to_dict()
            )
        cluster.tags = attrs.tags
    return make_reference(
        synth,
        "aws_ecs_cluster",
        name,
        attrs,
        ["id", "arn", "name", "tags_all"],
        computed={
            "using_fargate": any("FARGATE" in cp for cp in attrs.capacity_providers),
            "using_ec2": any("FARGATE" not in cp for cp in attrs.capacity_providers),
            "insights_enabled": attrs.insights_enabled,
            "estimated_monthly_cost": attrs.estimated_monthly_cost,
            "arn_pattern": attrs.arn_pattern(),
        },
    )


class EcrScanningConfiguration(BaseAttributes):
    scan_on_push: bool = False


class EcrEncryptionConfiguration(BaseAttributes):
    encryption_type: Literal["AES256", "KMS"] = "AES256"
    kms_key: Optional[str] = None

    @model_validator(mode="after")
    def check_kms_key(self):
        if self.encryption_type == "KMS" and not self.kms_key:
            raise ValueError("kms_key is required when encryption_type is KMS")
        if self.encryption_type != "KMS" and self.kms_key:
            raise ValueError(
                "kms_key can only be specified when encryption_type is KMS"
            )
        return self


class EcrRepositoryAttributes(BaseAttributes):
    resource_type = "aws_ecr_repository"

    name: str
    image_tag_mutability: Literal["MUTABLE", "IMMUTABLE"] = "MUTABLE"
    image_scanning_configuration: Optional[EcrScanningConfiguration] = None
    encryption_configuration: Optional[EcrEncryptionConfiguration] = None
    force_delete: bool = False
    tags: AwsTags = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if contains_interpolation(value):
            return value
        if not 2 <= len(value) <= 256:
            raise ValueError("Repository name must be between 2 and 256 characters")
        if not re.match(r"^[a-z0-9._/-]+$", value):
            raise ValueError(
                "Repository name must contain only lowercase letters, numbers, "
                "hyphens, underscores, periods, and forward slashes"
            )
        if value.startswith("-") or value.endswith("-"):
            raise ValueError("Repository name cannot start or end with hyphens")
        return value

    @property
    def scan_on_push_enabled(self) -> bool:
        return bool(
            self.image_scanning_configuration
            and self.image_scanning_configuration.scan_on_push
        )


@register_resource("containers")
def aws_ecr_repository(synth, name, attributes=None):
    attrs = EcrRepositoryAttributes.build(attributes)
    encryption = attrs.encryption_configuration
    with synth.resource("aws_ecr_repository", name) as repository:
        repository.name = attrs.name
        repository.image_tag_mutability = attrs.image_tag_mutability
        repository.block(
            "image_scanning_configuration", {"scan_on_push": attrs.scan_on_push_enabled}
        )
        if encryption:
            repository.block("encryption_configuration", encryption.compact_dict())
        repository.force_delete = attrs.force_delete
        repository.tags = attrs.tags
    return make_reference(
        synth,
        "aws_ecr_repository",
        name,
        attrs,
        ["id", "arn", "name", "registry_id", "repository_url", "tags_all"],
        computed={
            "is_immutable": attrs.image_tag_mutability == "IMMUTABLE",
            "scan_on_push_enabled": attrs.scan_on_push_enabled,
            "uses_kms_encryption": bool(
                encryption and encryption.encryption_type == "KMS"
            ),
            "uses_aes256_encryption": encryption is None
            or encryption.encryption_type == "AES256",
            "allows_force_delete": attrs.force_delete,
        },
    )
