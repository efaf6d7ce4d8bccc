"""
Application integration resources: API Gateway, Amazon MQ, SNS, SQS and
EventBridge (CloudWatch Events) rules.
"""

import json
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, StrictBool, field_validator, model_validator

from modules.attributes import BaseAttributes
from modules.registry import register_resource
from modules.types import AwsTags, IamRoleArn, validate_json_object
from modules.utils.string_utils import contains_interpolation

from . import make_reference

STAGE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
RESERVED_STAGE_NAMES = ("test",)
PRODUCTION_STAGE_NAMES = ("prod", "production", "live")
DEVELOPMENT_STAGE_NAMES = ("dev", "development", "sandbox")


def _check_stage_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not STAGE_NAME_PATTERN.match(value):
        raise ValueError(
            "Stage name must contain only alphanumeric characters and underscores"
        )
    if value.lower() in RESERVED_STAGE_NAMES:
        raise ValueError(f"Stage name '{value}' is reserved by API Gateway")
    return value


def _check_stage_variables(value: Dict[str, str]) -> Dict[str, str]:
    for key in value:
        if not STAGE_NAME_PATTERN.match(key):
            raise ValueError(
                "Stage variable names must contain only alphanumeric characters "
                f"and underscores: {key}"
            )
    return value


def _check_json_fields(model, *fields):
    for field in fields:
        value = getattr(model, field)
        if value is not None:
            validate_json_object(value, field)


class EndpointConfiguration(BaseAttributes):
    types: List[Literal["EDGE", "REGIONAL", "PRIVATE"]] = Field(
        default_factory=lambda: ["REGIONAL"]
    )
    vpc_endpoint_ids: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_private(self):
        if "PRIVATE" in self.types and not self.vpc_endpoint_ids:
            raise ValueError("VPC endpoint IDs must be provided for PRIVATE API type")
        return self


class RestApiAttributes(BaseAttributes):
    resource_type = "aws_api_gateway_rest_api"

    name: str
    description: Optional[str] = None
    endpoint_configuration: Optional[EndpointConfiguration] = None
    binary_media_types: List[str] = Field(default_factory=list)
    minimum_compression_size: Optional[int] = None
    api_key_source: Literal["HEADER", "AUTHORIZER"] = "HEADER"
    policy: Optional[str] = None
    body: Optional[str] = None
    disable_execute_api_endpoint: bool = False
    tags: AwsTags = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not re.match(r"^[a-zA-Z0-9._-]+$", value):
            raise ValueError(
                "API name must contain only alphanumeric characters, hyphens, "
                "underscores, and periods"
            )
        return value

    @field_validator("minimum_compression_size")
    @classmethod
    def check_compression(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and not 0 <= value <= 10485760:
            raise ValueError(
                "Minimum compression size must be between 0 and 10485760 bytes (10MB)"
            )
        return value

    @field_validator("binary_media_types")
    @classmethod
    def check_media_types(cls, value: List[str]) -> List[str]:
        for media_type in value:
            if not re.match(r"^[\w\-+.]+/[\w\-+.*]+$", media_type):
                raise ValueError(
                    f"Invalid binary media type format: {media_type}. "
                    "Expected format: type/subtype"
                )
        return value

    @model_validator(mode="after")
    def check_policy(self):
        _check_json_fields(self, "policy")
        return self

    @property
    def endpoint_types(self) -> List[str]:
        if self.endpoint_configuration is None:
            return []
        return list(self.endpoint_configuration.types)


@register_resource("integration")
def aws_api_gateway_rest_api(synth, name, attributes=None):
    attrs = RestApiAttributes.build(attributes)
    with synth.resource("aws_api_gateway_rest_api", name) as api:
        api.name = attrs.name
        api.description = attrs.description
        if attrs.endpoint_configuration:
            api.block(
                "endpoint_configuration", attrs.endpoint_configuration.compact_dict()
            )
        if attrs.binary_media_types:
            api.binary_media_types = attrs.binary_media_types
        api.minimum_compression_size = attrs.minimum_compression_size
        api.api_key_source = attrs.api_key_source
        api.policy = attrs.policy
        api.body = attrs.body
        if attrs.disable_execute_api_endpoint:
            api.disable_execute_api_endpoint = True
        api.tags = attrs.tags
    return make_reference(
        synth,
        "aws_api_gateway_rest_api",
        name,
        attrs,
        ["id", "arn", "root_resource_id", "execution_arn", "created_date", "name"],
        computed={
            "is_edge_optimized": "EDGE" in attrs.endpoint_types,
            "is_regional": "REGIONAL" in attrs.endpoint_types,
            "is_private": "PRIVATE" in attrs.endpoint_types,
            "supports_binary_content": bool(attrs.binary_media_types),
        },
    )


REQUEST_PARAMETER_LOCATIONS = (
    "path",
    "querystring",
    "header",
    "multivalueheader",
    "multivaluequerystring",
)
REQUEST_PARAMETER_PATTERN = re.compile(
    r"^method\.request\.(" + "|".join(REQUEST_PARAMETER_LOCATIONS) + r")\..+"
)


def build_request_parameter(location: str, name: str, required: bool = False):
    """Return a ``(parameter, required)`` pair for ``request_parameters``.

    Raises:
        ValueError: If ``location`` is not a request parameter location
    """
    if location not in REQUEST_PARAMETER_LOCATIONS:
        raise ValueError(
            f"Invalid location: {location}. Must be one of: "
            f"{', '.join(REQUEST_PARAMETER_LOCATIONS)}"
        )
    return f"method.request.{location}.{name}", required


class ApiGatewayMethodAttributes(BaseAttributes):
    resource_type = "aws_api_gateway_method"

    rest_api_id: str
    resource_id: str
    http_method: Literal[
        "GET", "POST", "PUT", "DELETE", "HEAD", "OPTIONS", "PATCH", "ANY"
    ]
    authorization: Literal["NONE", "AWS_IAM", "CUSTOM", "COGNITO_USER_POOLS"] = "NONE"
    authorizer_id: Optional[str] = None
    authorization_scopes: List[str] = Field(default_factory=list)
    api_key_required: bool = False
    request_parameters: Dict[str, bool] = Field(default_factory=dict)
    request_models: Dict[str, str] = Field(default_factory=dict)
    request_validator_id: Optional[str] = None
    operation_name: Optional[str] = None

    @model_validator(mode="after")
    def check_method(self):
        needs_authorizer = self.authorization in ("CUSTOM", "COGNITO_USER_POOLS")
        if needs_authorizer and not self.authorizer_id:
            raise ValueError(
                f"authorizer_id is required when authorization is {self.authorization}"
            )
        if self.authorization_scopes and self.authorization != "COGNITO_USER_POOLS":
            raise ValueError(
                "authorization_scopes can only be used with "
                "COGNITO_USER_POOLS authorization"
            )
        for parameter in self.request_parameters:
            if not REQUEST_PARAMETER_PATTERN.match(parameter):
                raise ValueError(
                    f"Invalid request parameter format: {parameter}. "
                    "Expected format: method.request.{location}.{name}"
                )
        for content_type in self.request_models:
            if not re.match(r"^[\w\-+]+/[\w\-+.]+$", content_type):
                raise ValueError(f"Invalid content type format: {content_type}")
        return self


@register_resource("integration")
def aws_api_gateway_method(synth, name, attributes=None):
    attrs = ApiGatewayMethodAttributes.build(attributes)
    with synth.resource("aws_api_gateway_method", name) as method:
        method.rest_api_id = attrs.rest_api_id
        method.resource_id = attrs.resource_id
        method.http_method = attrs.http_method
        method.authorization = attrs.authorization
        method.authorizer_id = attrs.authorizer_id
        if attrs.authorization_scopes:
            method.authorization_scopes = attrs.authorization_scopes
        if attrs.api_key_required:
            method.api_key_required = True
        if attrs.request_parameters:
            method.request_parameters = attrs.request_parameters
        if attrs.request_models:
            method.request_models = attrs.request_models
        method.request_validator_id = attrs.request_validator_id
        method.operation_name = attrs.operation_name
    return make_reference(
        synth,
        "aws_api_gateway_method",
        name,
        attrs,
        [
            "id",
            "rest_api_id",
            "resource_id",
            "http_method",
            "authorization",
            "authorizer_id",
            "api_key_required",
        ],
        computed={
            "requires_authorization": attrs.authorization != "NONE",
            "is_cognito_authorized": attrs.authorization == "COGNITO_USER_POOLS",
            "is_iam_authorized": attrs.authorization == "AWS_IAM",
            "is_custom_authorized": attrs.authorization == "CUSTOM",
            "has_request_validation": bool(attrs.request_models)
            or attrs.request_validator_id is not None,
            "cors_enabled": attrs.http_method == "OPTIONS",
        },
    )


class DeploymentCanarySettings(BaseAttributes):
    percent_traffic: Optional[float] = None
    stage_variable_overrides: Optional[Dict[str, str]] = None
    use_stage_cache: Optional[StrictBool] = None

    @field_validator("percent_traffic")
    @classmethod
    def check_percent(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not 0.0 <= value <= 100.0:
            raise ValueError("Canary traffic percentage must be between 0.0 and 100.0")
        return value


class ApiGatewayDeploymentAttributes(BaseAttributes):
    """Attributes of an API Gateway deployment.

    ``stage_name`` is alphanumeric/underscore and may not be the reserved
    ``test`` stage. Canary ``percent_traffic`` is a percentage and
    ``use_stage_cache`` must be a real boolean. Stage variable names follow
    the same pattern as stage names.
    """

    resource_type = "aws_api_gateway_deployment"

    rest_api_id: str
    stage_name: Optional[str] = None
    description: Optional[str] = None
    stage_description: Optional[str] = None
    variables: Dict[str, str] = Field(default_factory=dict)
    canary_settings: Optional[DeploymentCanarySettings] = None
    triggers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("stage_name")
    @classmethod
    def check_stage_name(cls, value: Optional[str]) -> Optional[str]:
        return _check_stage_name(value)

    @field_validator("variables")
    @classmethod
    def check_variables(cls, value: Dict[str, str]) -> Dict[str, str]:
        return _check_stage_variables(value)

    @property
    def creates_stage(self) -> bool:
        return self.stage_name is not None

    @property
    def has_canary(self) -> bool:
        return bool(
            self.canary_settings
            and self.canary_settings.percent_traffic
            and self.canary_settings.percent_traffic > 0
        )

    @property
    def canary_percentage(self) -> float:
        if not self.has_canary:
            return 0.0
        return float(self.canary_settings.percent_traffic)

    @property
    def has_stage_variables(self) -> bool:
        return bool(self.variables)

    @property
    def deployment_type(self) -> str:
        if self.has_canary and self.canary_percentage == 100.0:
            return "blue_green"
        if self.has_canary:
            return "canary"
        return "standard"

    def build_description_with_metadata(
        self, metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        """Join the description and ``key: value`` metadata pairs with `` | ``."""
        parts = [self.description] if self.description else []
        parts.extend(f"{key}: {value}" for key, value in (metadata or {}).items())
        return " | ".join(parts)


def _canary_configuration(attrs: ApiGatewayDeploymentAttributes) -> Dict[str, Any]:
    if not attrs.has_canary:
        return {"enabled": False}
    return {
        "enabled": True,
        "percent_traffic": attrs.canary_percentage,
        "variable_overrides": attrs.canary_settings.stage_variable_overrides or {},
        "use_stage_cache": attrs.canary_settings.use_stage_cache,
    }


def _stage_configuration(attrs: ApiGatewayDeploymentAttributes) -> Dict[str, Any]:
    config: Dict[str, Any] = {}
    if attrs.creates_stage:
        config["name"] = attrs.stage_name
    if attrs.stage_description:
        config["description"] = attrs.stage_description
    if attrs.has_stage_variables:
        config["variables"] = dict(attrs.variables)
    if attrs.has_canary:
        config["canary"] = _canary_configuration(attrs)
    return config


def _stage_in(stage_name: Optional[str], names) -> bool:
    return bool(stage_name) and stage_name.lower() in names


@register_resource("integration")
def aws_api_gateway_deployment(synth, name, attributes=None):
    """Declare an aws_api_gateway_deployment.

    The deployment is replaced before the old one is destroyed
    (``lifecycle.create_before_destroy``) so stages never point at nothing.

    Computed: ``creates_stage``, ``has_canary``, ``canary_percentage``,
    ``has_stage_variables``, ``deployment_type``, ``stage_url``,
    ``canary_configuration``, ``stage_configuration``, ``deployment_metadata``,
    ``trigger_names``, ``variable_names``, ``is_production_deployment``,
    ``is_development_deployment``.
    """
    attrs = ApiGatewayDeploymentAttributes.build(attributes)
    with synth.resource("aws_api_gateway_deployment", name) as deployment:
        deployment.rest_api_id = attrs.rest_api_id
        deployment.stage_name = attrs.stage_name
        deployment.stage_description = attrs.stage_description
        deployment.description = attrs.description
        if attrs.variables:
            deployment.variables = attrs.variables
        if attrs.canary_settings:
            deployment.block("canary_settings", attrs.canary_settings.compact_dict())
        if attrs.triggers:
            deployment.triggers = attrs.triggers
        with deployment.block("lifecycle") as lifecycle:
            lifecycle.create_before_destroy = True

    invoke_url = f"${{aws_api_gateway_deployment.{name}.invoke_url}}"
    return make_reference(
        synth,
        "aws_api_gateway_deployment",
        name,
        attrs,
        [
            "id",
            "rest_api_id",
            "stage_name",
            "stage_description",
            "description",
            "variables",
            "canary_settings",
            "triggers",
            "invoke_url",
            "execution_arn",
            "created_date",
        ],
        computed={
            "creates_stage": attrs.creates_stage,
            "has_canary": attrs.has_canary,
            "canary_percentage": attrs.canary_percentage,
            "has_stage_variables": attrs.has_stage_variables,
            "deployment_type": attrs.deployment_type,
            "stage_url": invoke_url if attrs.creates_stage else None,
            "canary_configuration": _canary_configuration(attrs),
            "stage_configuration": _stage_configuration(attrs),
            "deployment_metadata": {
                "type": attrs.deployment_type,
                "creates_stage": attrs.creates_stage,
                "has_canary": attrs.has_canary,
                "trigger_count": len(attrs.triggers),
                "variable_count": len(attrs.variables),
                "canary_enabled": attrs.has_canary,
            },
            "trigger_names": list(attrs.triggers),
            "variable_names": list(attrs.variables),
            "is_production_deployment": _stage_in(
                attrs.stage_name, PRODUCTION_STAGE_NAMES
            ),
            "is_development_deployment": _stage_in(
                attrs.stage_name, DEVELOPMENT_STAGE_NAMES
            ),
        },
    )


class AccessLogSettings(BaseAttributes):
    destination_arn: str
    format: str


class StageCanarySettings(BaseAttributes):
    percent_traffic: float = Field(default=0.0, ge=0.0, le=100.0)
    deployment_id: Optional[str] = None
    stage_variable_overrides: Optional[Dict[str, str]] = None
    use_stage_cache: Optional[StrictBool] = None


class ApiGatewayStageAttributes(BaseAttributes):
    resource_type = "aws_api_gateway_stage"

    rest_api_id: str
    deployment_id: str
    stage_name: str
    description: Optional[str] = None
    documentation_version: Optional[str] = None
    cache_cluster_enabled: bool = False
    cache_cluster_size: Optional[
        Literal["0.5", "1.6", "6.1", "13.5", "28.4", "58.2", "118", "237"]
    ] = None
    variables: Dict[str, str] = Field(default_factory=dict)
    xray_tracing_enabled: bool = False
    access_log_settings: Optional[AccessLogSettings] = None
    canary_settings: Optional[StageCanarySettings] = None
    client_certificate_id: Optional[str] = None
    tags: AwsTags = Field(default_factory=dict)

    @field_validator("stage_name")
    @classmethod
    def check_stage_name(cls, value: str) -> str:
        return _check_stage_name(value)

    @field_validator("variables")
    @classmethod
    def check_variables(cls, value: Dict[str, str]) -> Dict[str, str]:
        return _check_stage_variables(value)

    @model_validator(mode="after")
    def check_cache(self):
        if self.cache_cluster_size and not self.cache_cluster_enabled:
            raise ValueError(
                "cache_cluster_size requires cache_cluster_enabled to be true"
            )
        return self


@register_resource("integration")
def aws_api_gateway_stage(synth, name, attributes=None):
    attrs = ApiGatewayStageAttributes.build(attributes)
    with synth.resource("aws_api_gateway_stage", name) as stage:
        stage.rest_api_id = attrs.rest_api_id
        stage.deployment_id = attrs.deployment_id
        stage.stage_name = attrs.stage_name
        stage.description = attrs.description
        stage.documentation_version = attrs.documentation_version
        stage.cache_cluster_enabled = attrs.cache_cluster_enabled
        stage.cache_cluster_size = attrs.cache_cluster_size
        if attrs.variables:
            stage.variables = attrs.variables
        stage.xray_tracing_enabled = attrs.xray_tracing_enabled
        if attrs.access_log_settings:
            stage.block("access_log_settings", attrs.access_log_settings.to_dict())
        if attrs.canary_settings:
            stage.block("canary_settings", attrs.canary_settings.compact_dict())
        stage.client_certificate_id = attrs.client_certificate_id
        stage.tags = attrs.tags
    return make_reference(
        synth,
        "aws_api_gateway_stage",
        name,
        attrs,
        [
            "id",
            "rest_api_id",
            "stage_name",
            "deployment_id",
            "arn",
            "invoke_url",
            "execution_arn",
            "description",
            "cache_cluster_enabled",
            "variables",
            "xray_tracing_enabled",
            "tags_all",
            "web_acl_arn",
        ],
        computed={
            "has_caching": attrs.cache_cluster_enabled,
            "has_access_logging": attrs.access_log_settings is not None,
            "has_canary": bool(
                attrs.canary_settings and attrs.canary_settings.percent_traffic > 0
            ),
            "is_production_stage": _stage_in(attrs.stage_name, PRODUCTION_STAGE_NAMES),
        },
    )


MQ_INSTANCE_TYPES = (
    "mq.t2.micro",
    "mq.t3.micro",
    "mq.m4.large",
    "mq.m5.large",
    "mq.m5.xlarge",
    "mq.m5.2xlarge",
    "mq.m5.4xlarge",
    "mq.c4.large",
    "mq.c4.xlarge",
    "mq.c5.large",
    "mq.c5.xlarge",
    "mq.c5.2xlarge",
    "mq.c5.4xlarge",
    "mq.c5.9xlarge",
    "mq.r4.large",
    "mq.r4.xlarge",
    "mq.r4.2xlarge",
    "mq.r4.4xlarge",
    "mq.r5.large",
    "mq.r5.xlarge",
    "mq.r5.2xlarge",
    "mq.r5.4xlarge",
    "mq.r5.12xlarge",
)
MQ_ENGINE_DEPLOYMENT_MODES = {
    "ActiveMQ": ("SINGLE_INSTANCE", "ACTIVE_STANDBY_MULTI_AZ"),
    "RabbitMQ": ("SINGLE_INSTANCE", "CLUSTER_MULTI_AZ"),
}

DayOfWeek = Literal[
    "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"
]


class MqUser(BaseAttributes):
    username: str = Field(min_length=1, max_length=100)
    password: Optional[str] = Field(default=None, min_length=12, max_length=250)
    console_access: Optional[bool] = None
    groups: Optional[List[str]] = None


class MqConfiguration(BaseAttributes):
    id: Optional[str] = None
    revision: Optional[int] = Field(default=None, ge=1)


class MqEncryptionOptions(BaseAttributes):
    kms_key_id: Optional[str] = None
    use_aws_owned_key: Optional[bool] = None


class MqMaintenanceWindow(BaseAttributes):
    day_of_week: DayOfWeek
    time_of_day: str = Field(pattern=r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
    time_zone: Optional[str] = None


class MqLogs(BaseAttributes):
    general: Optional[bool] = None
    audit: Optional[bool] = None


class MqLdapServerMetadata(BaseAttributes):
    hosts: List[str] = Field(min_length=1)
    role_base: str
    role_name: Optional[str] = None
    role_search_matching: Optional[str] = None
    role_search_subtree: Optional[bool] = None
    service_account_password: str
    service_account_username: str
    user_base: str
    user_role_name: Optional[str] = None
    user_search_matching: Optional[str] = None
    user_search_subtree: Optional[bool] = None


class MqBrokerAttributes(BaseAttributes):
    """Attributes of an Amazon MQ broker.

    Each engine supports its own deployment modes; multi-AZ modes need at
    least two subnets; LDAP authentication needs server metadata and EFS
    storage is RabbitMQ only.
    """

    resource_type = "aws_mq_broker"

    broker_name: str = Field(min_length=1, max_length=50, pattern=r"^[a-zA-Z0-9_-]+$")
    engine_type: Literal["ActiveMQ", "RabbitMQ"]
    engine_version: str
    host_instance_type: str
    users: List[MqUser] = Field(min_length=1, max_length=250)
    apply_immediately: bool = False
    authentication_strategy: Literal["simple", "ldap"] = "simple"
    auto_minor_version_upgrade: bool = False
    configuration: Optional[MqConfiguration] = None
    deployment_mode: Literal[
        "SINGLE_INSTANCE", "ACTIVE_STANDBY_MULTI_AZ", "CLUSTER_MULTI_AZ"
    ] = "SINGLE_INSTANCE"
    encryption_options: Optional[MqEncryptionOptions] = None
    ldap_server_metadata: Optional[MqLdapServerMetadata] = None
    logs: Optional[MqLogs] = None
    maintenance_window_start_time: Optional[MqMaintenanceWindow] = None
    publicly_accessible: bool = False
    security_groups: Optional[List[str]] = None
    storage_type: Optional[Literal["ebs", "efs"]] = None
    subnet_ids: Optional[List[str]] = None
    tags: AwsTags = Field(default_factory=dict)

    @field_validator("host_instance_type")
    @classmethod
    def check_instance_type(cls, value: str) -> str:
        if value not in MQ_INSTANCE_TYPES:
            raise ValueError(f"Unsupported MQ host instance type: {value}")
        return value

    @model_validator(mode="after")
    def check_broker(self):
        supported = MQ_ENGINE_DEPLOYMENT_MODES[self.engine_type]
        if self.deployment_mode not in supported:
            raise ValueError(
                f"{self.engine_type} only supports {' and '.join(supported)} "
                "deployment modes"
            )
        if "MULTI_AZ" in self.deployment_mode and len(self.subnet_ids or []) < 2:
            raise ValueError("Multi-AZ deployment requires at least 2 subnet IDs")
        if self.authentication_strategy == "ldap" and self.ldap_server_metadata is None:
            raise ValueError(
                "ldap_server_metadata is required when "
                "authentication_strategy is 'ldap'"
            )
        if self.storage_type == "efs" and self.engine_type != "RabbitMQ":
            raise ValueError("EFS storage type is only supported for RabbitMQ brokers")
        return self


@register_resource("integration")
def aws_mq_broker(synth, name, attributes=None):
    """Declare an aws_mq_broker with one ``user`` block per user.

    Attributes left at the provider default are not written.
    """
    attrs = MqBrokerAttributes.build(attributes)
    with synth.resource("aws_mq_broker", name) as broker:
        broker.broker_name = attrs.broker_name
        broker.engine_type = attrs.engine_type
        broker.engine_version = attrs.engine_version
        broker.host_instance_type = attrs.host_instance_type
        for user in attrs.users:
            broker.block("user", user.compact_dict())
        if attrs.apply_immediately:
            broker.apply_immediately = True
        if attrs.authentication_strategy != "simple":
            broker.authentication_strategy = attrs.authentication_strategy
        if attrs.auto_minor_version_upgrade:
            broker.auto_minor_version_upgrade = True
        if attrs.configuration:
            broker.block("configuration", attrs.configuration.compact_dict())
        if attrs.deployment_mode != "SINGLE_INSTANCE":
            broker.deployment_mode = attrs.deployment_mode
        if attrs.encryption_options:
            broker.block("encryption_options", attrs.encryption_options.compact_dict())
        if attrs.ldap_server_metadata:
            broker.block(
                "ldap_server_metadata", attrs.ldap_server_metadata.compact_dict()
            )
        if attrs.logs:
            broker.block("logs", attrs.logs.compact_dict())
        if attrs.maintenance_window_start_time:
            broker.block(
                "maintenance_window_start_time",
                attrs.maintenance_window_start_time.compact_dict(),
            )
        if attrs.publicly_accessible:
            broker.publicly_accessible = True
        broker.security_groups = attrs.security_groups
        broker.storage_type = attrs.storage_type
        broker.subnet_ids = attrs.subnet_ids
        broker.tags = attrs.tags
    return make_reference(
        synth,
        "aws_mq_broker",
        name,
        attrs,
        ["id", "arn", "broker_name", "instances"],
        paths={
            "console_url": "instances.0.console_url",
            "endpoints": "instances.0.endpoints",
        },
        computed={
            "is_multi_az": "MULTI_AZ" in attrs.deployment_mode,
            "uses_ldap": attrs.authentication_strategy == "ldap",
            "user_count": len(attrs.users),
        },
    )


FEEDBACK_PROTOCOLS = ("application", "http", "lambda", "sqs", "firehose")


class SnsTopicAttributes(BaseAttributes):
    resource_type = "aws_sns_topic"

    name: Optional[str] = None
    display_name: Optional[str] = None
    kms_master_key_id: Optional[str] = None
    fifo_topic: bool = False
    content_based_deduplication: bool = False
    delivery_policy: Optional[str] = None
    policy: Optional[str] = None
    application_success_feedback_role_arn: Optional[str] = None
    application_success_feedback_sample_rate: Optional[int] = Field(
        default=None, ge=0, le=100
    )
    application_failure_feedback_role_arn: Optional[str] = None
    http_success_feedback_role_arn: Optional[str] = None
    http_success_feedback_sample_rate: Optional[int] = Field(default=None, ge=0, le=100)
    http_failure_feedback_role_arn: Optional[str] = None
    lambda_success_feedback_role_arn: Optional[str] = None
    lambda_success_feedback_sample_rate: Optional[int] = Field(
        default=None, ge=0, le=100
    )
    lambda_failure_feedback_role_arn: Optional[str] = None
    sqs_success_feedback_role_arn: Optional[str] = None
    sqs_success_feedback_sample_rate: Optional[int] = Field(default=None, ge=0, le=100)
    sqs_failure_feedback_role_arn: Optional[str] = None
    firehose_success_feedback_role_arn: Optional[str] = None
    firehose_success_feedback_sample_rate: Optional[int] = Field(
        default=None, ge=0, le=100
    )
    firehose_failure_feedback_role_arn: Optional[str] = None
    message_data_protection_policy: Optional[str] = None
    tracing_config: Optional[Literal["Active", "PassThrough"]] = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_topic(self):
        if self.name and self.fifo_topic and not self.name.endswith(".fifo"):
            raise ValueError("FIFO topic names must end with '.fifo' suffix")
        if self.name and not self.fifo_topic and self.name.endswith(".fifo"):
            raise ValueError("Standard topic names cannot end with '.fifo' suffix")
        if not self.fifo_topic and self.content_based_deduplication:
            raise ValueError(
                "content_based_deduplication is only valid for FIFO topics"
            )
        _check_json_fields(
            self, "delivery_policy", "policy", "message_data_protection_policy"
        )
        for protocol in FEEDBACK_PROTOCOLS:
            sample_rate = f"{protocol}_success_feedback_sample_rate"
            role_arn = f"{protocol}_success_feedback_role_arn"
            if getattr(self, sample_rate) is not None and not getattr(self, role_arn):
                raise ValueError(f"{sample_rate} requires {role_arn} to be set")
        return self

    @property
    def feedback_protocols(self) -> List[str]:
        return [
            protocol
            for protocol in FEEDBACK_PROTOCOLS
            if getattr(self, f"{protocol}_success_feedback_role_arn")
            or getattr(self, f"{protocol}_failure_feedback_role_arn")
        ]


@register_resource("integration")
def aws_sns_topic(synth, name, attributes=None):
    attrs = SnsTopicAttributes.build(attributes)
    with synth.resource("aws_sns_topic", name) as topic:
        for key, value in attrs.to_dict().items():
            if key in ("fifo_topic", "content_based_deduplication", "tags"):
                continue
            topic.set(key, value)
        if attrs.fifo_topic:
            topic.fifo_topic = True
            topic.content_based_deduplication = attrs.content_based_deduplication
        topic.tags = attrs.tags
    return make_reference(
        synth,
        "aws_sns_topic",
        name,
        attrs,
        ["id", "arn", "name", "owner", "beginning_archive_time"],
        computed={
            "topic_type": "FIFO" if attrs.fifo_topic else "Standard",
            "is_fifo": attrs.fifo_topic,
            "is_encrypted": bool(attrs.kms_master_key_id),
            "has_delivery_policy": bool(attrs.delivery_policy),
            "has_access_policy": bool(attrs.policy),
            "has_data_protection": bool(attrs.message_data_protection_policy),
            "has_feedback_enabled": bool(attrs.feedback_protocols),
            "feedback_protocols": attrs.feedback_protocols,
            "tracing_enabled": attrs.tracing_config == "Active",
        },
    )


class RedrivePolicy(BaseAttributes):
    deadLetterTargetArn: str
    maxReceiveCount: int = Field(default=3, ge=1, le=1000)


class RedriveAllowPolicy(BaseAttributes):
    redrivePermission: Literal["allowAll", "denyAll", "byQueue"] = "allowAll"
    sourceQueueArns: Optional[List[str]] = None

    @model_validator(mode="after")
    def check_sources(self):
        if self.redrivePermission == "byQueue" and not self.sourceQueueArns:
            raise ValueError(
                "sourceQueueArns must be specified when redrivePermission is 'byQueue'"
            )
        return self


class SqsQueueAttributes(BaseAttributes):
    resource_type = "aws_sqs_queue"

    name: str
    fifo_queue: bool = False
    content_based_deduplication: bool = False
    visibility_timeout_seconds: int = Field(default=30, ge=0, le=43200)
    message_retention_seconds: int = Field(default=345600, ge=60, le=1209600)
    max_message_size: int = Field(default=262144, ge=1024, le=262144)
    delay_seconds: int = Field(default=0, ge=0, le=900)
    receive_wait_time_seconds: int = Field(default=0, ge=0, le=20)
    redrive_policy: Optional[RedrivePolicy] = None
    redrive_allow_policy: Optional[RedriveAllowPolicy] = None
    kms_master_key_id: Optional[str] = None
    kms_data_key_reuse_period_seconds: int = Field(default=300, ge=60, le=86400)
    sqs_managed_sse_enabled: bool = False
    deduplication_scope: Literal["messageGroup", "queue"] = "queue"
    fifo_throughput_limit: Literal["perMessageGroupId", "perQueue"] = "perQueue"
    policy: Optional[str] = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_queue(self):
        if self.fifo_queue and not self.name.endswith(".fifo"):
            raise ValueError("FIFO queue names must end with '.fifo' suffix")
        if not self.fifo_queue:
            if self.name.endswith(".fifo"):
                raise ValueError("Standard queue names cannot end with '.fifo' suffix")
            if self.content_based_deduplication:
                raise ValueError(
                    "content_based_deduplication is only valid for FIFO queues"
                )
            if self.deduplication_scope != "queue":
                raise ValueError("deduplication_scope is only valid for FIFO queues")
            if self.fifo_throughput_limit != "perQueue":
                raise ValueError("fifo_throughput_limit is only valid for FIFO queues")
        if self.kms_master_key_id and self.sqs_managed_sse_enabled:
            raise ValueError(
                "Cannot enable both KMS encryption and "
                "SQS managed server-side encryption"
            )
        _check_json_fields(self, "policy")
        return self

    @property
    def encryption_type(self) -> str:
        if self.kms_master_key_id:
            return "KMS"
        if self.sqs_managed_sse_enabled:
            return "SQS-SSE"
        return "None"


@register_resource("integration")
def aws_sqs_queue(synth, name, attributes=None):
    """Declare an aws_sqs_queue.

    Redrive policies are written as JSON strings, the form the provider
    expects.
    """
    attrs = SqsQueueAttributes.build(attributes)
    with synth.resource("aws_sqs_queue", name) as queue:
        queue.name = attrs.name
        if attrs.fifo_queue:
            queue.fifo_queue = True
            queue.content_based_deduplication = attrs.content_based_deduplication
            queue.deduplication_scope = attrs.deduplication_scope
            queue.fifo_throughput_limit = attrs.fifo_throughput_limit
        queue.visibility_timeout_seconds = attrs.visibility_timeout_seconds
        queue.message_retention_seconds = attrs.message_retention_seconds
        queue.max_message_size = attrs.max_message_size
        queue.delay_seconds = attrs.delay_seconds
        queue.receive_wait_time_seconds = attrs.receive_wait_time_seconds
        if attrs.redrive_policy:
            queue.redrive_policy = json.dumps(attrs.redrive_policy.to_dict())
        if attrs.redrive_allow_policy:
            queue.redrive_allow_policy = json.dumps(
                attrs.redrive_allow_policy.compact_dict()
            )
        if attrs.kms_master_key_id:
            queue.kms_master_key_id = attrs.kms_master_key_id
            queue.kms_data_key_reuse_period_seconds = (
                attrs.kms_data_key_reuse_period_seconds
            )
        if attrs.sqs_managed_sse_enabled:
            queue.sqs_managed_sse_enabled = True
        queue.policy = attrs.policy
        queue.tags = attrs.tags
    return make_reference(
        synth,
        "aws_sqs_queue",
        name,
        attrs,
        ["id", "arn", "name", "url"],
        computed={
            "queue_type": "FIFO" if attrs.fifo_queue else "Standard",
            "is_fifo": attrs.fifo_queue,
            "is_encrypted": attrs.encryption_type != "None",
            "encryption_type": attrs.encryption_type,
            "has_dlq": attrs.redrive_policy is not None,
            "long_polling_enabled": attrs.receive_wait_time_seconds > 0,
            "is_delay_queue": attrs.delay_seconds > 0,
            "allows_all_sources": attrs.redrive_allow_policy is None
            or attrs.redrive_allow_policy.redrivePermission == "allowAll",
        },
    )


class EventRuleAttributes(BaseAttributes):
    resource_type = "aws_cloudwatch_event_rule"

    name: Optional[str] = None
    name_prefix: Optional[str] = None
    description: Optional[str] = None
    event_bus_name: str = "default"
    event_pattern: Optional[str] = None
    schedule_expression: Optional[str] = None
    state: Literal["ENABLED", "DISABLED"] = "ENABLED"
    role_arn: Optional[IamRoleArn] = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def map_is_enabled(cls, data: Any) -> Any:
        if isinstance(data, dict) and "is_enabled" in data:
            data = dict(data)
            data["state"] = "ENABLED" if data.pop("is_enabled") else "DISABLED"
        return data

    @model_validator(mode="after")
    def check_rule(self):
        if self.name and self.name_prefix:
            raise ValueError("Cannot specify both name and name_prefix")
        if not self.name and not self.name_prefix:
            raise ValueError("Must specify either name or name_prefix")
        if self.name and not re.match(r"^[.\-_A-Za-z0-9]+$", self.name):
            raise ValueError(
                "name must contain only alphanumeric characters, periods, hyphens, "
                "and underscores"
            )
        if self.event_pattern and self.schedule_expression:
            raise ValueError(
                "Cannot specify both event_pattern and schedule_expression"
            )
        if not self.event_pattern and not self.schedule_expression:
            raise ValueError("Must specify either event_pattern or schedule_expression")
        if self.event_pattern:
            validate_json_object(self.event_pattern, "event_pattern")
        if self.schedule_expression and not re.match(
            r"^(rate|cron)\(.+\)$", self.schedule_expression
        ):
            raise ValueError(
                "schedule_expression must be a rate() or cron() expression"
            )
        return self

    @property
    def rule_type(self) -> str:
        return "event_pattern" if self.event_pattern else "scheduled"

    @property
    def schedule_type(self) -> Optional[str]:
        if not self.schedule_expression:
            return None
        return "rate" if self.schedule_expression.startswith("rate(") else "cron"

    def _pattern_values(self, key: str) -> List[str]:
        if not self.event_pattern or contains_interpolation(self.event_pattern):
            return []
        value = json.loads(self.event_pattern).get(key, [])
        return value if isinstance(value, list) else [value]


@register_resource("integration")
def aws_cloudwatch_event_rule(synth, name, attributes=None):
    """Declare an EventBridge rule driven by an event pattern or a schedule.

    ``is_enabled`` is accepted as a shorthand for ``state``.
    """
    attrs = EventRuleAttributes.build(attributes)
    with synth.resource("aws_cloudwatch_event_rule", name) as rule:
        rule.name = attrs.name
        rule.name_prefix = attrs.name_prefix
        rule.description = attrs.description
        rule.event_bus_name = attrs.event_bus_name
        rule.event_pattern = attrs.event_pattern
        rule.schedule_expression = attrs.schedule_expression
        rule.state = attrs.state
        rule.role_arn = attrs.role_arn
        rule.tags = attrs.tags
    return make_reference(
        synth,
        "aws_cloudwatch_event_rule",
        name,
        attrs,
        [
            "id",
            "arn",
            "name",
            "description",
            "event_bus_name",
            "event_pattern",
            "schedule_expression",
            "state",
            "role_arn",
        ],
        computed={
            "rule_type": attrs.rule_type,
            "schedule_type": attrs.schedule_type,
            "event_sources": attrs._pattern_values("source"),
            "event_detail_types": attrs._pattern_values("detail-type"),
            "is_custom_event_bus": attrs.event_bus_name != "default",
            "is_enabled": attrs.state == "ENABLED",
        },
    )
