"""
Management resources: CloudWatch log groups and metric alarms.
"""

import re
from typing import Dict, List, Literal, Optional, Union

from pydantic import Field, field_validator, model_validator

from modules.attributes import BaseAttributes
from modules.registry import register_resource
from modules.types import AwsTags
from modules.utils.string_utils import contains_interpolation

from . import make_reference

LOG_RETENTION_DAYS = (
    1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545, 731,
    1096, 1827, 2192, 2557, 2922, 3288, 3653,
)
LOG_GROUP_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\-/.#]+$")


class CloudWatchLogGroupAttributes(BaseAttributes):
    """Attributes of a CloudWatch log group.

    ``retention_in_days`` is one of the retention periods CloudWatch Logs
    supports, or an interpolation.
    """

    resource_type = "aws_cloudwatch_log_group"

    name: str
    retention_in_days: Optional[Union[int, str]] = None
    kms_key_id: Optional[str] = None
    log_group_class: Optional[str] = None
    skip_destroy: bool = False
    tags: AwsTags = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if contains_interpolation(value):
            return value
        if not 1 <= len(value) <= 512:
            raise ValueError("Log group name must be between 1 and 512 characters")
        if value.startswith("aws/"):
            raise ValueError(
                "Log group name cannot start with the reserved prefix 'aws/'"
            )
        if "//" in value:
            raise ValueError(
                f"Log group name cannot contain consecutive slashes: {value}"
            )
        if len(value) > 1 and value.endswith("/"):
            raise ValueError(f"Log group name cannot end with a slash: {value}")
        if not LOG_GROUP_NAME_PATTERN.match(value):
            raise ValueError(f"Log group name contains invalid characters: {value}")
        return value

    @field_validator("retention_in_days")
    @classmethod
    def check_retention(cls, value):
        if value is None:
            return value
        if isinstance(value, str):
            if contains_interpolation(value):
                return value
            raise ValueError(
                "retention_in_days must be a number of days or an interpolation"
            )
        if value not in LOG_RETENTION_DAYS:
            raise ValueError(
                f"retention_in_days {value} is not supported. Valid values: "
                f"{', '.join(str(days) for days in LOG_RETENTION_DAYS)}"
            )
        return value

    @field_validator("log_group_class")
    @classmethod
    def check_class(cls, value: Optional[str]) -> Optional[str]:
        if value is None or contains_interpolation(value):
            return value
        if value not in ("STANDARD", "INFREQUENT_ACCESS"):
            raise ValueError(
                f"log_group_class must be STANDARD or INFREQUENT_ACCESS, got {value}"
            )
        return value


@register_resource("management")
def aws_cloudwatch_log_group(synth, name, attributes=None):
    attrs = CloudWatchLogGroupAttributes.build(attributes)
    with synth.resource("aws_cloudwatch_log_group", name) as group:
        group.name = attrs.name
        group.retention_in_days = attrs.retention_in_days
        group.kms_key_id = attrs.kms_key_id
        group.log_group_class = attrs.log_group_class
        if attrs.skip_destroy:
            group.skip_destroy = True
        group.tags = attrs.tags
    return make_reference(
        synth,
        "aws_cloudwatch_log_group",
        name,
        attrs,
        [
            "id",
            "arn",
            "name",
            "retention_in_days",
            "kms_key_id",
            "log_group_class",
            "tags_all",
        ],
        computed={
            "has_retention": attrs.retention_in_days is not None,
            "has_encryption": attrs.kms_key_id is not None,
            "is_infrequent_access": attrs.log_group_class == "INFREQUENT_ACCESS",
        },
    )


ComparisonOperator = Literal[
    "GreaterThanOrEqualToThreshold",
    "GreaterThanThreshold",
    "LessThanThreshold",
    "LessThanOrEqualToThreshold",
    "LessThanLowerOrGreaterThanUpperThreshold",
    "LessThanLowerThreshold",
    "GreaterThanUpperThreshold",
]
Statistic = Literal["SampleCount", "Average", "Sum", "Minimum", "Maximum"]


class AlarmMetric(BaseAttributes):
    metric_name: str
    namespace: str
    period: int = Field(ge=1)
    stat: str
    unit: Optional[str] = None
    dimensions: Dict[str, str] = Field(default_factory=dict)


class AlarmMetricQuery(BaseAttributes):
    id: str
    expression: Optional[str] = None
    label: Optional[str] = None
    return_data: bool = False
    metric: Optional[AlarmMetric] = None

    @model_validator(mode="after")
    def check_source(self):
        if self.expression and self.metric:
            raise ValueError(
                f"Metric query '{self.id}' cannot have both expression and metric"
            )
        if not self.expression and not self.metric:
            raise ValueError(
                f"Metric query '{self.id}' must have either expression or metric"
            )
        return self


class CloudWatchMetricAlarmAttributes(BaseAttributes):
    """Attributes of a CloudWatch metric alarm.

    A traditional alarm watches one metric (``metric_name``, ``namespace``,
    ``period``, a statistic and a ``threshold``). A metric math alarm uses
    ``metric_query`` entries and compares against ``threshold`` or an
    anomaly band (``threshold_metric_id``).
    """

    resource_type = "aws_cloudwatch_metric_alarm"

    alarm_name: Optional[str] = None
    alarm_description: Optional[str] = None
    comparison_operator: ComparisonOperator
    evaluation_periods: int = Field(ge=1)
    datapoints_to_alarm: Optional[int] = Field(default=None, ge=1)
    threshold: Optional[float] = None
    threshold_metric_id: Optional[str] = None
    actions_enabled: bool = True
    alarm_actions: List[str] = Field(default_factory=list)
    ok_actions: List[str] = Field(default_factory=list)
    insufficient_data_actions: List[str] = Field(default_factory=list)
    treat_missing_data: Literal["breaching", "notBreaching", "ignore", "missing"] = (
        "missing"
    )
    evaluate_low_sample_count_percentile: Optional[Literal["evaluate", "ignore"]] = None
    metric_name: Optional[str] = None
    namespace: Optional[str] = None
    period: Optional[int] = Field(default=None, ge=1)
    statistic: Optional[Statistic] = None
    extended_statistic: Optional[str] = None
    unit: Optional[str] = None
    dimensions: Dict[str, str] = Field(default_factory=dict)
    metric_query: List[AlarmMetricQuery] = Field(default_factory=list)
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_alarm(self):
        if self.metric_query and self.metric_name:
            raise ValueError("Cannot specify both metric_query and metric_name")
        if not self.metric_query and not self.metric_name:
            raise ValueError("Must specify either metric_query or metric_name")
        if self.metric_name:
            if not self.namespace or not self.period or not (
                self.statistic or self.extended_statistic
            ):
                raise ValueError(
                    "Traditional alarm requires namespace, period, and statistic "
                    "or extended_statistic"
                )
            if self.statistic and self.extended_statistic:
                raise ValueError("Cannot specify both statistic and extended_statistic")
            if self.threshold is None:
                raise ValueError("Traditional alarm requires threshold")
        else:
            if self.threshold is None and self.threshold_metric_id is None:
                raise ValueError(
                    "Metric math alarm requires either threshold or threshold_metric_id"
                )
            if self.threshold is not None and self.threshold_metric_id is not None:
                raise ValueError(
                    "Cannot specify both threshold and threshold_metric_id"
                )
        datapoints = self.datapoints_to_alarm
        if datapoints and datapoints > self.evaluation_periods:
            raise ValueError(
                "datapoints_to_alarm cannot be greater than evaluation_periods"
            )
        return self

    @property
    def is_traditional_alarm(self) -> bool:
        return self.metric_name is not None

    @property
    def is_metric_math_alarm(self) -> bool:
        return bool(self.metric_query)

    @property
    def uses_anomaly_detector(self) -> bool:
        return any(
            query.expression and "ANOMALY_DETECTION_BAND" in query.expression
            for query in self.metric_query
        )


@register_resource("management")
def aws_cloudwatch_metric_alarm(synth, name, attributes=None):
    """Declare a CloudWatch alarm over a single metric or a metric math expression."""
    attrs = CloudWatchMetricAlarmAttributes.build(attributes)
    with synth.resource("aws_cloudwatch_metric_alarm", name) as alarm:
        alarm.alarm_name = attrs.alarm_name
        alarm.alarm_description = attrs.alarm_description
        alarm.comparison_operator = attrs.comparison_operator
        alarm.evaluation_periods = attrs.evaluation_periods
        alarm.actions_enabled = attrs.actions_enabled
        alarm.treat_missing_data = attrs.treat_missing_data
        alarm.datapoints_to_alarm = attrs.datapoints_to_alarm
        alarm.evaluate_low_sample_count_percentile = (
            attrs.evaluate_low_sample_count_percentile
        )
        for actions in ("alarm_actions", "ok_actions", "insufficient_data_actions"):
            if getattr(attrs, actions):
                alarm.set(actions, getattr(attrs, actions))
        alarm.threshold = attrs.threshold
        if attrs.is_traditional_alarm:
            alarm.metric_name = attrs.metric_name
            alarm.namespace = attrs.namespace
            alarm.period = attrs.period
            alarm.statistic = attrs.statistic
            alarm.extended_statistic = attrs.extended_statistic
            alarm.unit = attrs.unit
            if attrs.dimensions:
                alarm.dimensions = attrs.dimensions
        else:
            alarm.threshold_metric_id = attrs.threshold_metric_id
            for query in attrs.metric_query:
                with alarm.block("metric_query") as block:
                    block.id = query.id
                    block.expression = query.expression
                    block.label = query.label
                    block.return_data = query.return_data
                    if query.metric:
                        block.block("metric", query.metric.compact_dict())
        alarm.tags = attrs.tags
    return make_reference(
        synth,
        "aws_cloudwatch_metric_alarm",
        name,
        attrs,
        [
            "id",
            "arn",
            "alarm_name",
            "alarm_description",
            "comparison_operator",
            "evaluation_periods",
            "metric_name",
            "namespace",
            "period",
            "statistic",
            "threshold",
            "treat_missing_data",
        ],
        computed={
            "is_metric_math_alarm": attrs.is_metric_math_alarm,
            "is_traditional_alarm": attrs.is_traditional_alarm,
            "uses_anomaly_detector": attrs.uses_anomaly_detector,
        },
    )
