"""
Compute resources: EC2 instances, Lambda functions and Auto Scaling groups.
"""

import re
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AfterValidator, Field, field_validator, model_validator

from modules.attributes import BaseAttributes
from modules.registry import register_resource
from modules.types import AwsTags, IamRoleArn, KmsKeyArn, terraform_pattern

from . import make_reference

VolumeType = Literal["standard", "gp2", "gp3", "io1", "io2"]

# Burstable families share CPU credits and skip dedicated EBS bandwidth
BURSTABLE_FAMILIES = ("t2", "t3", "t3a", "t4g")

HOURLY_COSTS = {
    "t3.micro": 0.0104,
    "t3.small": 0.0208,
    "t3.medium": 0.0416,
    "t3.large": 0.0832,
    "t3.xlarge": 0.1664,
    "m5.large": 0.096,
    "m5.xlarge": 0.192,
    "m5.2xlarge": 0.384,
    "c5.large": 0.085,
    "c5.xlarge": 0.17,
    "r5.large": 0.126,
    "r5.xlarge": 0.252,
}
DEFAULT_HOURLY_COST = 0.10


class RootBlockDevice(BaseAttributes):
    volume_type: Optional[VolumeType] = None
    volume_size: Optional[int] = Field(default=None, ge=1, le=16384)
    iops: Optional[int] = None
    throughput: Optional[int] = None
    delete_on_termination: Optional[bool] = None
    encrypted: Optional[bool] = None
    kms_key_id: Optional[str] = None

    @model_validator(mode="after")
    def check_performance(self):
        if self.iops is not None and self.volume_type not in ("io1", "io2"):
            raise ValueError("IOPS can only be specified for io1 or io2 volume types")
        if self.throughput is not None and self.volume_type != "gp3":
            raise ValueError("Throughput can only be specified for gp3 volume type")
        return self


class EbsBlockDevice(RootBlockDevice):
    device_name: str
    snapshot_id: Optional[str] = None


class InstanceAttributes(BaseAttributes):
    resource_type = "aws_instance"

    ami: str
    instance_type: str
    subnet_id: Optional[str] = None
    vpc_security_group_ids: List[str] = Field(default_factory=list)
    availability_zone: Optional[str] = None
    associate_public_ip_address: Optional[bool] = None
    key_name: Optional[str] = None
    user_data: Optional[str] = None
    user_data_base64: Optional[str] = None
    iam_instance_profile: Optional[str] = None
    root_block_device: Optional[RootBlockDevice] = None
    ebs_block_device: List[EbsBlockDevice] = Field(default_factory=list)
    instance_initiated_shutdown_behavior: Optional[Literal["stop", "terminate"]] = None
    monitoring: bool = False
    ebs_optimized: bool = False
    source_dest_check: Optional[bool] = None
    disable_api_termination: bool = False
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_user_data(self):
        if self.user_data and self.user_data_base64:
            raise ValueError("Cannot specify both 'user_data' and 'user_data_base64'")
        return self

    @property
    def instance_family(self) -> str:
        return self.instance_type.split(".")[0]

    @property
    def supports_ebs_optimization(self) -> bool:
        return self.instance_family not in BURSTABLE_FAMILIES

    @property
    def estimated_hourly_cost(self) -> float:
        return HOURLY_COSTS.get(self.instance_type, DEFAULT_HOURLY_COST)


@register_resource("compute")
def aws_instance(synth, name, attributes=None):
    """Declare an aws_instance.

    Computed: ``will_have_public_ip``, ``compute_family``, ``compute_size``,
    ``supports_ebs_optimization``, ``estimated_hourly_cost``.
    """
    attrs = InstanceAttributes.build(attributes)
    with synth.resource("aws_instance", name) as instance:
        instance.ami = attrs.ami
        instance.instance_type = attrs.instance_type
        instance.subnet_id = attrs.subnet_id
        if attrs.vpc_security_group_ids:
            instance.vpc_security_group_ids = attrs.vpc_security_group_ids
        instance.availability_zone = attrs.availability_zone
        instance.associate_public_ip_address = attrs.associate_public_ip_address
        instance.key_name = attrs.key_name
        instance.user_data = attrs.user_data
        instance.user_data_base64 = attrs.user_data_base64
        instance.iam_instance_profile = attrs.iam_instance_profile
        if attrs.root_block_device:
            instance.block("root_block_device", attrs.root_block_device.compact_dict())
        for device in attrs.ebs_block_device:
            instance.block("ebs_block_device", device.compact_dict())
        instance.instance_initiated_shutdown_behavior = (
            attrs.instance_initiated_shutdown_behavior
        )
        if attrs.monitoring:
            instance.monitoring = True
        if attrs.ebs_optimized:
            instance.ebs_optimized = True
        instance.source_dest_check = attrs.source_dest_check
        if attrs.disable_api_termination:
            instance.disable_api_termination = True
        instance.tags = attrs.tags
    return make_reference(
        synth,
        "aws_instance",
        name,
        attrs,
        [
            "id",
            "arn",
            "public_ip",
            "private_ip",
            "public_dns",
            "private_dns",
            "instance_state",
            "subnet_id",
            "availability_zone",
            "key_name",
            "vpc_security_group_ids",
        ],
        computed={
            "supports_ebs_optimization": attrs.supports_ebs_optimization,
            "estimated_hourly_cost": attrs.estimated_hourly_cost,
        },
    )


LAMBDA_RUNTIMES = (
    "python3.9",
    "python3.10",
    "python3.11",
    "python3.12",
    "python3.13",
    "nodejs18.x",
    "nodejs20.x",
    "nodejs22.x",
    "java11",
    "java17",
    "java21",
    "dotnet8",
    "ruby3.2",
    "ruby3.3",
    "provided.al2",
    "provided.al2023",
)
SNAP_START_RUNTIMES = ("java11", "java17", "java21")
RESERVED_ENVIRONMENT_KEYS = (
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "AWS_LAMBDA_FUNCTION_NAME",
    "AWS_LAMBDA_FUNCTION_MEMORY_SIZE",
    "AWS_LAMBDA_FUNCTION_VERSION",
    "AWS_EXECUTION_ENV",
    "LAMBDA_TASK_ROOT",
    "LAMBDA_RUNTIME_DIR",
)
ENVIRONMENT_KEY_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")

# USD per GB-second and per million requests
LAMBDA_GB_SECOND_PRICE = 0.0000166667
LAMBDA_REQUEST_PRICE = 0.20


class LambdaVpcConfig(BaseAttributes):
    subnet_ids: List[str] = Field(min_length=1)
    security_group_ids: List[str] = Field(min_length=1)


class LambdaImageConfig(BaseAttributes):
    entry_point: Optional[List[str]] = None
    command: Optional[List[str]] = None
    working_directory: Optional[str] = None


class LambdaFileSystemConfig(BaseAttributes):
    arn: str
    local_mount_path: str

    @field_validator("local_mount_path")
    @classmethod
    def check_mount_path(cls, value: str) -> str:
        if not value.startswith("/mnt/"):
            raise ValueError(f"EFS local_mount_path must start with /mnt/: {value}")
        return value


class LambdaLoggingConfig(BaseAttributes):
    log_format: Literal["Text", "JSON"] = "Text"
    log_group: Optional[str] = None
    application_log_level: Optional[
        Literal["TRACE", "DEBUG", "INFO", "WARN", "ERROR", "FATAL"]
    ] = None
    system_log_level: Optional[Literal["DEBUG", "INFO", "WARN"]] = None


class LambdaFunctionAttributes(BaseAttributes):
    resource_type = "aws_lambda_function"

    function_name: str = Field(pattern=r"^[a-zA-Z0-9_-]{1,64}$")
    role: IamRoleArn
    package_type: Literal["Zip", "Image"] = "Zip"
    handler: Optional[str] = None
    runtime: Optional[str] = None
    filename: Optional[str] = None
    s3_bucket: Optional[str] = None
    s3_key: Optional[str] = None
    s3_object_version: Optional[str] = None
    image_uri: Optional[str] = None
    image_config: Optional[LambdaImageConfig] = None
    description: Optional[str] = Field(default=None, max_length=256)
    timeout: int = Field(default=3, ge=1, le=900)
    memory_size: int = Field(default=128, ge=128, le=10240)
    publish: bool = False
    architectures: List[Literal["x86_64", "arm64"]] = Field(
        default_factory=lambda: ["x86_64"], min_length=1, max_length=1
    )
    reserved_concurrent_executions: Optional[int] = Field(default=None, ge=-1)
    layers: List[str] = Field(default_factory=list, max_length=5)
    environment_variables: Dict[str, str] = Field(default_factory=dict)
    vpc_config: Optional[LambdaVpcConfig] = None
    dead_letter_target_arn: Optional[str] = None
    file_system_config: Optional[LambdaFileSystemConfig] = None
    tracing_mode: Optional[Literal["Active", "PassThrough"]] = None
    kms_key_arn: Optional[KmsKeyArn] = None
    code_signing_config_arn: Optional[str] = None
    ephemeral_storage_size: Optional[int] = Field(default=None, ge=512, le=10240)
    snap_start: bool = False
    logging_config: Optional[LambdaLoggingConfig] = None
    tags: AwsTags = Field(default_factory=dict)

    @field_validator("runtime")
    @classmethod
    def check_runtime(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in LAMBDA_RUNTIMES:
            raise ValueError(f"Unsupported Lambda runtime: {value}")
        return value

    @field_validator("environment_variables")
    @classmethod
    def check_environment(cls, value: Dict[str, str]) -> Dict[str, str]:
        for key in value:
            if not ENVIRONMENT_KEY_PATTERN.match(key):
                raise ValueError(f"Invalid environment variable name: {key}")
            if key in RESERVED_ENVIRONMENT_KEYS:
                raise ValueError(f"Environment variable {key} is reserved by Lambda")
        return value

    @model_validator(mode="after")
    def check_package(self):
        if self.package_type == "Image":
            if not self.image_uri:
                raise ValueError("image_uri is required when package_type is 'Image'")
            if self.handler or self.runtime:
                raise ValueError(
                    "handler and runtime must not be set when package_type is 'Image'"
                )
        else:
            if not self.handler or not self.runtime:
                raise ValueError("handler and runtime are required for Zip packages")
            if self.image_uri or self.image_config:
                raise ValueError(
                    "image_uri and image_config require package_type 'Image'"
                )
            if self.filename and self.s3_bucket:
                raise ValueError("Cannot specify both 'filename' and 's3_bucket'")
            if not self.filename and not self.s3_bucket:
                raise ValueError("Zip packages require either filename or s3_bucket")
            if self.s3_bucket and not self.s3_key:
                raise ValueError("s3_key is required when s3_bucket is specified")
        if self.snap_start and not self.supports_snap_start:
            raise ValueError("SnapStart is only supported for Java runtimes")
        return self

    @property
    def supports_snap_start(self) -> bool:
        return self.runtime in SNAP_START_RUNTIMES

    @property
    def architecture(self) -> str:
        return self.architectures[0]

    @property
    def estimated_monthly_cost(self) -> float:
        """Cost of one million average-duration invocations per month."""
        gb_seconds = (self.memory_size / 1024.0) * self.timeout * 1_000_000
        return round(gb_seconds * LAMBDA_GB_SECOND_PRICE + LAMBDA_REQUEST_PRICE, 2)


@register_resource("compute")
def aws_lambda_function(synth, name, attributes=None):
    """Declare an aws_lambda_function from a Zip archive or a container image."""
    attrs = LambdaFunctionAttributes.build(attributes)
    with synth.resource("aws_lambda_function", name) as function:
        function.function_name = attrs.function_name
        function.role = attrs.role
        if attrs.package_type == "Image":
            function.package_type = "Image"
            function.image_uri = attrs.image_uri
            if attrs.image_config:
                function.block("image_config", attrs.image_config.compact_dict())
        else:
            function.handler = attrs.handler
            function.runtime = attrs.runtime
            if attrs.filename:
                function.filename = attrs.filename
            else:
                function.s3_bucket = attrs.s3_bucket
                function.s3_key = attrs.s3_key
                function.s3_object_version = attrs.s3_object_version
        function.description = attrs.description
        function.timeout = attrs.timeout
        function.memory_size = attrs.memory_size
        function.publish = attrs.publish
        function.architectures = attrs.architectures
        function.reserved_concurrent_executions = attrs.reserved_concurrent_executions
        if attrs.layers:
            function.layers = attrs.layers
        if attrs.environment_variables:
            function.block("environment", {"variables": attrs.environment_variables})
        if attrs.vpc_config:
            function.block("vpc_config", attrs.vpc_config.to_dict())
        if attrs.dead_letter_target_arn:
            function.block(
                "dead_letter_config", {"target_arn": attrs.dead_letter_target_arn}
            )
        if attrs.file_system_config:
            function.block("file_system_config", attrs.file_system_config.to_dict())
        if attrs.tracing_mode:
            function.block("tracing_config", {"mode": attrs.tracing_mode})
        function.kms_key_arn = attrs.kms_key_arn
        function.code_signing_config_arn = attrs.code_signing_config_arn
        if attrs.ephemeral_storage_size:
            function.block("ephemeral_storage", {"size": attrs.ephemeral_storage_size})
        if attrs.snap_start:
            function.block("snap_start", {"apply_on": "PublishedVersions"})
        if attrs.logging_config:
            function.block("logging_config", attrs.logging_config.compact_dict())
        function.tags = attrs.tags
    return make_reference(
        synth,
        "aws_lambda_function",
        name,
        attrs,
        [
            "arn",
            "function_name",
            "qualified_arn",
            "qualified_invoke_arn",
            "invoke_arn",
            "version",
            "last_modified",
            "source_code_hash",
            "source_code_size",
            "role",
            "handler",
            "runtime",
            "timeout",
            "memory_size",
            "signing_job_arn",
            "signing_profile_version_arn",
        ],
        computed={
            "estimated_monthly_cost": attrs.estimated_monthly_cost,
            "requires_vpc": attrs.vpc_config is not None,
            "has_dlq": attrs.dead_letter_target_arn is not None,
            "uses_efs": attrs.file_system_config is not None,
            "is_container_based": attrs.package_type == "Image",
            "supports_snap_start": attrs.supports_snap_start,
            "architecture": attrs.architecture,
        },
    )


class LaunchTemplateSpecification(BaseAttributes):
    id: Optional[str] = None
    name: Optional[str] = None
    version: str = "$Latest"

    @model_validator(mode="after")
    def check_identifier(self):
        if not self.id and not self.name:
            raise ValueError("Launch template must specify either 'id' or 'name'")
        if self.id and self.name:
            raise ValueError("Launch template cannot specify both 'id' and 'name'")
        return self


class AutoScalingTag(BaseAttributes):
    key: str
    value: str
    propagate_at_launch: bool = True


class InstanceRefreshPreferences(BaseAttributes):
    strategy: Literal["Rolling"] = "Rolling"
    min_healthy_percentage: int = Field(default=90, ge=0, le=100)
    instance_warmup: Optional[int] = Field(default=None, ge=0)
    checkpoint_percentages: List[int] = Field(default_factory=list)
    checkpoint_delay: Optional[int] = Field(default=None, ge=0)
    triggers: List[str] = Field(default_factory=list)


TerminationPolicy = Literal[
    "OldestInstance",
    "NewestInstance",
    "OldestLaunchConfiguration",
    "OldestLaunchTemplate",
    "ClosestToNextInstanceHour",
    "Default",
    "AllocationStrategy",
]


class AutoScalingGroupAttributes(BaseAttributes):
    resource_type = "aws_autoscaling_group"

    min_size: int = Field(ge=0)
    max_size: int = Field(ge=0)
    desired_capacity: Optional[int] = None
    default_cooldown: int = 300
    launch_configuration: Optional[str] = None
    launch_template: Optional[LaunchTemplateSpecification] = None
    mixed_instances_policy: Optional[Dict[str, Any]] = None
    vpc_zone_identifier: List[str] = Field(default_factory=list)
    availability_zones: List[str] = Field(default_factory=list)
    health_check_type: Literal["EC2", "ELB"] = "EC2"
    health_check_grace_period: int = 300
    termination_policies: List[TerminationPolicy] = Field(default_factory=list)
    enabled_metrics: List[str] = Field(default_factory=list)
    metrics_granularity: Literal["1Minute"] = "1Minute"
    wait_for_capacity_timeout: str = "10m"
    min_elb_capacity: Optional[int] = None
    protect_from_scale_in: bool = False
    service_linked_role_arn: Optional[str] = None
    max_instance_lifetime: Optional[int] = None
    capacity_rebalance: bool = False
    target_group_arns: List[str] = Field(default_factory=list)
    load_balancers: List[str] = Field(default_factory=list)
    tags: List[AutoScalingTag] = Field(default_factory=list)
    instance_refresh: Optional[InstanceRefreshPreferences] = None

    @model_validator(mode="after")
    def check_group(self):
        if self.min_size > self.max_size:
            raise ValueError(
                f"min_size ({self.min_size}) cannot be greater than "
                f"max_size ({self.max_size})"
            )
        if self.desired_capacity is not None and not (
            self.min_size <= self.desired_capacity <= self.max_size
        ):
            raise ValueError(
                f"desired_capacity ({self.desired_capacity}) must be between "
                f"min_size ({self.min_size}) and max_size ({self.max_size})"
            )
        launch_sources = [
            source
            for source in (
                self.launch_configuration,
                self.launch_template,
                self.mixed_instances_policy,
            )
            if source is not None
        ]
        if not launch_sources:
            raise ValueError(
                "Auto Scaling Group must specify one of: launch_configuration, "
                "launch_template, or mixed_instances_policy"
            )
        if len(launch_sources) > 1:
            raise ValueError(
                "Auto Scaling Group can only specify one of: launch_configuration, "
                "launch_template, or mixed_instances_policy"
            )
        if not self.vpc_zone_identifier and not self.availability_zones:
            raise ValueError(
                "Auto Scaling Group must specify either vpc_zone_identifier "
                "or availability_zones"
            )
        return self


@register_resource("compute")
def aws_autoscaling_group(synth, name, attributes=None):
    """Declare an aws_autoscaling_group with one ``tag`` block per tag."""
    attrs = AutoScalingGroupAttributes.build(attributes)
    with synth.resource("aws_autoscaling_group", name) as group:
        group.min_size = attrs.min_size
        group.max_size = attrs.max_size
        group.desired_capacity = attrs.desired_capacity
        group.default_cooldown = attrs.default_cooldown
        group.health_check_type = attrs.health_check_type
        group.health_check_grace_period = attrs.health_check_grace_period
        group.wait_for_capacity_timeout = attrs.wait_for_capacity_timeout
        group.protect_from_scale_in = attrs.protect_from_scale_in
        group.capacity_rebalance = attrs.capacity_rebalance
        group.launch_configuration = attrs.launch_configuration
        if attrs.launch_template:
            group.block("launch_template", attrs.launch_template.compact_dict())
        group.mixed_instances_policy = attrs.mixed_instances_policy
        if attrs.vpc_zone_identifier:
            group.vpc_zone_identifier = attrs.vpc_zone_identifier
        if attrs.availability_zones:
            group.availability_zones = attrs.availability_zones
        if attrs.termination_policies:
            group.termination_policies = attrs.termination_policies
        if attrs.enabled_metrics:
            group.enabled_metrics = attrs.enabled_metrics
            group.metrics_granularity = attrs.metrics_granularity
        group.min_elb_capacity = attrs.min_elb_capacity
        group.service_linked_role_arn = attrs.service_linked_role_arn
        group.max_instance_lifetime = attrs.max_instance_lifetime
        if attrs.target_group_arns:
            group.target_group_arns = attrs.target_group_arns
        if attrs.load_balancers:
            group.load_balancers = attrs.load_balancers
        for tag in attrs.tags:
            group.block("tag", tag.to_dict())
        if attrs.instance_refresh:
            refresh = attrs.instance_refresh
            with group.block("instance_refresh") as instance_refresh:
                instance_refresh.strategy = refresh.strategy
                preferences = refresh.compact_dict()
                preferences.pop("strategy")
                preferences.pop("triggers", None)
                instance_refresh.block("preferences", preferences)
                if refresh.triggers:
                    instance_refresh.triggers = refresh.triggers
    return make_reference(
        synth,
        "aws_autoscaling_group",
        name,
        attrs,
        [
            "id",
            "arn",
            "name",
            "min_size",
            "max_size",
            "desired_capacity",
            "default_cooldown",
            "health_check_type",
            "availability_zones",
            "vpc_zone_identifier",
            "load_balancers",
            "target_group_arns",
        ],
        computed={
            "uses_launch_template": attrs.launch_template is not None,
            "uses_mixed_instances": attrs.mixed_instances_policy is not None,
            "uses_target_groups": bool(attrs.target_group_arns),
            "uses_classic_load_balancers": bool(attrs.load_balancers),
        },
    )


INSTANCE_TYPE_PATTERN = r"^[a-z][a-z0-9-]*\.[a-z0-9-]+$"

InstanceType = Annotated[
    str,
    AfterValidator(
        terraform_pattern(INSTANCE_TYPE_PATTERN, "invalid instance type: {value}")
    ),
]


class LaunchTemplateEbs(RootBlockDevice):
    snapshot_id: Optional[str] = None


class LaunchTemplateBlockDevice(BaseAttributes):
    device_name: str
    no_device: Optional[str] = None
    virtual_name: Optional[str] = None
    ebs: Optional[LaunchTemplateEbs] = None


class LaunchTemplateNetworkInterface(BaseAttributes):
    device_index: int = Field(default=0, ge=0)
    associate_public_ip_address: Optional[bool] = None
    delete_on_termination: bool = True
    description: Optional[str] = None
    groups: List[str] = Field(default_factory=list)
    network_interface_id: Optional[str] = None
    private_ip_address: Optional[str] = None
    subnet_id: Optional[str] = None


class LaunchTemplateInstanceProfile(BaseAttributes):
    arn: Optional[str] = None
    name: Optional[str] = None

    @model_validator(mode="after")
    def check_identifier(self):
        if bool(self.arn) == bool(self.name):
            raise ValueError(
                "iam_instance_profile must specify exactly one of 'arn' or 'name'"
            )
        return self


class LaunchTemplateTagSpecification(BaseAttributes):
    resource_type: Literal[
        "instance",
        "volume",
        "elastic-gpu",
        "network-interface",
        "spot-instances-request",
    ]
    tags: AwsTags = Field(default_factory=dict)


class LaunchTemplateMonitoring(BaseAttributes):
    enabled: bool


class LaunchTemplateData(BaseAttributes):
    image_id: Optional[str] = None
    instance_type: Optional[InstanceType] = None
    key_name: Optional[str] = None
    user_data: Optional[str] = None
    security_group_ids: List[str] = Field(default_factory=list)
    vpc_security_group_ids: List[str] = Field(default_factory=list)
    iam_instance_profile: Optional[LaunchTemplateInstanceProfile] = None
    instance_initiated_shutdown_behavior: Literal["stop", "terminate"] = "stop"
    disable_api_termination: bool = False
    monitoring: Optional[LaunchTemplateMonitoring] = None
    block_device_mappings: List[LaunchTemplateBlockDevice] = Field(default_factory=list)
    network_interfaces: List[LaunchTemplateNetworkInterface] = Field(
        default_factory=list
    )
    tag_specifications: List[LaunchTemplateTagSpecification] = Field(
        default_factory=list
    )

    @model_validator(mode="after")
    def check_security_groups(self):
        if self.network_interfaces and self.vpc_security_group_ids:
            raise ValueError(
                "vpc_security_group_ids cannot be combined with network_interfaces; "
                "set groups on the network interface instead"
            )
        return self


class LaunchTemplateAttributes(BaseAttributes):
    resource_type = "aws_launch_template"

    name: Optional[str] = Field(default=None, pattern=r"^[a-zA-Z0-9().\-/_]{3,128}$")
    name_prefix: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=255)
    update_default_version: Optional[bool] = None
    launch_template_data: LaunchTemplateData = Field(default_factory=LaunchTemplateData)
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_name(self):
        if self.name and self.name_prefix:
            raise ValueError("Cannot specify both 'name' and 'name_prefix'")
        return self


@register_resource("compute")
def aws_launch_template(synth, name, attributes=None):
    """Declare an aws_launch_template.

    ``launch_template_data`` groups the instance settings; they are written at
    the top level of the resource body, where Terraform expects them.
    ``user_data`` must already be base64 encoded.
    """
    attrs = LaunchTemplateAttributes.build(attributes)
    data = attrs.launch_template_data
    with synth.resource("aws_launch_template", name) as template:
        template.name = attrs.name
        template.name_prefix = attrs.name_prefix
        template.description = attrs.description
        template.update_default_version = attrs.update_default_version
        template.image_id = data.image_id
        template.instance_type = data.instance_type
        template.key_name = data.key_name
        template.user_data = data.user_data
        if data.security_group_ids:
            template.security_group_ids = data.security_group_ids
        if data.vpc_security_group_ids:
            template.vpc_security_group_ids = data.vpc_security_group_ids
        if data.iam_instance_profile:
            template.block(
                "iam_instance_profile", data.iam_instance_profile.compact_dict()
            )
        if data.instance_initiated_shutdown_behavior != "stop":
            template.instance_initiated_shutdown_behavior = (
                data.instance_initiated_shutdown_behavior
            )
        if data.disable_api_termination:
            template.disable_api_termination = True
        if data.monitoring:
            template.block("monitoring", data.monitoring.to_dict())
        for mapping in data.block_device_mappings:
            template.block("block_device_mappings", mapping.compact_dict())
        for interface in data.network_interfaces:
            body = interface.compact_dict()
            # delete_on_termination defaults to true on the AWS side
            if interface.delete_on_termination:
                body.pop("delete_on_termination")
            template.block("network_interfaces", body)
        for specification in data.tag_specifications:
            template.block("tag_specifications", specification.compact_dict())
        template.tags = attrs.tags
    return make_reference(
        synth,
        "aws_launch_template",
        name,
        attrs,
        ["id", "arn", "latest_version", "default_version", "name"],
        computed={
            "has_instance_profile": data.iam_instance_profile is not None,
            "has_user_data": data.user_data is not None,
            "block_device_count": len(data.block_device_mappings),
            "uses_network_interfaces": bool(data.network_interfaces),
        },
    )


class AutoScalingAttachmentAttributes(BaseAttributes):
    resource_type = "aws_autoscaling_attachment"

    autoscaling_group_name: str
    lb_target_group_arn: Optional[str] = None
    elb: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self):
        if bool(self.lb_target_group_arn) == bool(self.elb):
            raise ValueError(
                "Auto Scaling attachment requires exactly one of "
                "lb_target_group_arn or elb"
            )
        return self


@register_resource("compute")
def aws_autoscaling_attachment(synth, name, attributes=None):
    """Declare an aws_autoscaling_attachment to a target group or classic ELB."""
    attrs = AutoScalingAttachmentAttributes.build(attributes)
    synth.resource("aws_autoscaling_attachment", name, attrs.compact_dict())
    return make_reference(
        synth,
        "aws_autoscaling_attachment",
        name,
        attrs,
        ["id"],
        computed={"attaches_target_group": attrs.lb_target_group_arn is not None},
    )


class StepAdjustment(BaseAttributes):
    scaling_adjustment: int
    metric_interval_lower_bound: Optional[float] = None
    metric_interval_upper_bound: Optional[float] = None

    @model_validator(mode="after")
    def check_bounds(self):
        lower = self.metric_interval_lower_bound
        upper = self.metric_interval_upper_bound
        if lower is not None and upper is not None and lower >= upper:
            raise ValueError(
                f"metric_interval_lower_bound ({lower}) must be less than "
                f"metric_interval_upper_bound ({upper})"
            )
        return self


class PredefinedMetricSpecification(BaseAttributes):
    predefined_metric_type: Literal[
        "ASGAverageCPUUtilization",
        "ASGAverageNetworkIn",
        "ASGAverageNetworkOut",
        "ALBRequestCountPerTarget",
    ]
    resource_label: Optional[str] = None

    @model_validator(mode="after")
    def check_resource_label(self):
        label_required = self.predefined_metric_type == "ALBRequestCountPerTarget"
        if label_required and not self.resource_label:
            raise ValueError("ALBRequestCountPerTarget requires resource_label")
        return self


class CustomizedMetricSpecification(BaseAttributes):
    metric_name: str
    namespace: str
    statistic: Literal["Average", "Minimum", "Maximum", "SampleCount", "Sum"]
    unit: Optional[str] = None
    dimensions: Dict[str, str] = Field(default_factory=dict)


class TargetTrackingConfiguration(BaseAttributes):
    target_value: float
    disable_scale_in: bool = False
    predefined_metric_specification: Optional[PredefinedMetricSpecification] = None
    customized_metric_specification: Optional[CustomizedMetricSpecification] = None

    @model_validator(mode="after")
    def check_metric(self):
        predefined = self.predefined_metric_specification is not None
        customized = self.customized_metric_specification is not None
        if predefined == customized:
            raise ValueError(
                "Target tracking requires exactly one of "
                "predefined_metric_specification or customized_metric_specification"
            )
        return self


class PredictiveScalingConfiguration(BaseAttributes):
    metric_specification: Dict[str, Any]
    mode: Literal["ForecastOnly", "ForecastAndScale"] = "ForecastOnly"
    scheduling_buffer_time: Optional[int] = Field(default=None, ge=0, le=3600)
    max_capacity_breach_behavior: Literal["HonorMaxCapacity", "IncreaseMaxCapacity"] = (
        "HonorMaxCapacity"
    )
    max_capacity_buffer: Optional[int] = Field(default=None, ge=0, le=100)


class AutoScalingPolicyAttributes(BaseAttributes):
    resource_type = "aws_autoscaling_policy"

    autoscaling_group_name: str
    name: Optional[str] = None
    policy_type: Literal[
        "SimpleScaling", "StepScaling", "TargetTrackingScaling", "PredictiveScaling"
    ] = "SimpleScaling"
    adjustment_type: Optional[
        Literal["ChangeInCapacity", "ExactCapacity", "PercentChangeInCapacity"]
    ] = None
    scaling_adjustment: Optional[int] = None
    cooldown: Optional[int] = Field(default=None, ge=0)
    min_adjustment_magnitude: Optional[int] = Field(default=None, ge=1)
    metric_aggregation_type: Literal["Average", "Minimum", "Maximum"] = "Average"
    step_adjustments: List[StepAdjustment] = Field(default_factory=list)
    estimated_instance_warmup: Optional[int] = Field(default=None, ge=0)
    target_tracking_configuration: Optional[TargetTrackingConfiguration] = None
    predictive_scaling_configuration: Optional[PredictiveScalingConfiguration] = None

    @model_validator(mode="after")
    def check_policy_type(self):
        if self.policy_type == "SimpleScaling":
            if self.adjustment_type is None or self.scaling_adjustment is None:
                raise ValueError(
                    "SimpleScaling policy requires adjustment_type "
                    "and scaling_adjustment"
                )
        elif self.policy_type == "StepScaling":
            if self.adjustment_type is None or not self.step_adjustments:
                raise ValueError(
                    "StepScaling policy requires adjustment_type and step_adjustments"
                )
            if self.scaling_adjustment is not None:
                raise ValueError(
                    "StepScaling policy cannot use scaling_adjustment "
                    "(use step_adjustments instead)"
                )
        elif self.policy_type == "TargetTrackingScaling":
            if self.target_tracking_configuration is None:
                raise ValueError(
                    "TargetTrackingScaling policy requires "
                    "target_tracking_configuration"
                )
            if self.adjustment_type is not None or self.scaling_adjustment is not None:
                raise ValueError(
                    "TargetTrackingScaling policy cannot use adjustment_type "
                    "or scaling_adjustment"
                )
        elif self.predictive_scaling_configuration is None:
            raise ValueError(
                "PredictiveScaling policy requires predictive_scaling_configuration"
            )
        if (
            self.min_adjustment_magnitude is not None
            and self.adjustment_type != "PercentChangeInCapacity"
        ):
            raise ValueError(
                "min_adjustment_magnitude is only valid with PercentChangeInCapacity"
            )
        return self


def _target_tracking_block(policy, config: TargetTrackingConfiguration):
    with policy.block("target_tracking_configuration") as tracking:
        tracking.target_value = config.target_value
        if config.disable_scale_in:
            tracking.disable_scale_in = True
        if config.predefined_metric_specification:
            tracking.block(
                "predefined_metric_specification",
                config.predefined_metric_specification.compact_dict(),
            )
        else:
            metric = config.customized_metric_specification
            with tracking.block("customized_metric_specification") as customized:
                for key, value in metric.dimensions.items():
                    customized.block("metric_dimension", {"name": key, "value": value})
                customized.metric_name = metric.metric_name
                customized.namespace = metric.namespace
                customized.statistic = metric.statistic
                customized.unit = metric.unit


@register_resource("compute")
def aws_autoscaling_policy(synth, name, attributes=None):
    """Declare an aws_autoscaling_policy.

    Only the attributes of the chosen ``policy_type`` are written. The policy
    name defaults to the resource name.
    """
    attrs = AutoScalingPolicyAttributes.build(attributes)
    with synth.resource("aws_autoscaling_policy", name) as policy:
        policy.name = attrs.name or name
        policy.autoscaling_group_name = attrs.autoscaling_group_name
        policy.policy_type = attrs.policy_type
        if attrs.policy_type == "SimpleScaling":
            policy.adjustment_type = attrs.adjustment_type
            policy.scaling_adjustment = attrs.scaling_adjustment
            policy.cooldown = attrs.cooldown
            policy.min_adjustment_magnitude = attrs.min_adjustment_magnitude
        elif attrs.policy_type == "StepScaling":
            policy.adjustment_type = attrs.adjustment_type
            policy.metric_aggregation_type = attrs.metric_aggregation_type
            policy.estimated_instance_warmup = attrs.estimated_instance_warmup
            policy.min_adjustment_magnitude = attrs.min_adjustment_magnitude
            for step in attrs.step_adjustments:
                policy.block("step_adjustment", step.compact_dict())
        elif attrs.policy_type == "TargetTrackingScaling":
            policy.estimated_instance_warmup = attrs.estimated_instance_warmup
            _target_tracking_block(policy, attrs.target_tracking_configuration)
        else:
            policy.block(
                "predictive_scaling_configuration",
                attrs.predictive_scaling_configuration.compact_dict(),
            )
    return make_reference(
        synth,
        "aws_autoscaling_policy",
        name,
        attrs,
        ["id", "arn", "name", "adjustment_type", "policy_type"],
        computed={
            "is_simple_scaling": attrs.policy_type == "SimpleScaling",
            "is_step_scaling": attrs.policy_type == "StepScaling",
            "is_target_tracking": attrs.policy_type == "TargetTrackingScaling",
            "is_predictive": attrs.policy_type == "PredictiveScaling",
        },
    )
