"""
Analytics resources: Kinesis data streams.
"""

from typing import List, Literal, Optional

from pydantic import Field, model_validator

from modules.attributes import BaseAttributes
from modules.registry import register_resource
from modules.types import AwsTags, KmsKeyReference

from . import make_reference

ShardLevelMetric = Literal[
    "IncomingRecords",
    "IncomingBytes",
    "OutgoingRecords",
    "OutgoingBytes",
    "WriteProvisionedThroughputExceeded",
    "ReadProvisionedThroughputExceeded",
    "IteratorAgeMilliseconds",
    "ALL",
]

# Per shard ingest limits
SHARD_THROUGHPUT_MBPS = 1.0
SHARD_THROUGHPUT_RECORDS = 1000
SHARD_HOUR_PRICE = 0.015
EXTENDED_RETENTION_DAY_PRICE = 0.023


class StreamModeDetails(BaseAttributes):
    stream_mode: Literal["PROVISIONED", "ON_DEMAND"] = "PROVISIONED"


class KinesisStreamAttributes(BaseAttributes):
    """Attributes of a Kinesis data stream.

    ``retention_period`` is in hours (24 to 8760). ON_DEMAND streams scale
    on their own and keep the default single shard.
    """

    resource_type = "aws_kinesis_stream"

    name: str
    shard_count: int = Field(default=1, ge=1, le=500000)
    retention_period: int = Field(default=24, ge=24, le=8760)
    shard_level_metrics: List[ShardLevelMetric] = Field(default_factory=list)
    encryption_type: Literal["NONE", "KMS"] = "NONE"
    kms_key_id: Optional[KmsKeyReference] = None
    stream_mode_details: StreamModeDetails = Field(default_factory=StreamModeDetails)
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_stream(self):
        if self.encryption_type == "KMS" and not self.kms_key_id:
            raise ValueError("KMS key ID is required when encryption_type is 'KMS'")
        if self.is_on_demand_mode and self.shard_count != 1:
            raise ValueError("Cannot specify shard_count with ON_DEMAND stream mode")
        return self

    @property
    def is_on_demand_mode(self) -> bool:
        return self.stream_mode_details.stream_mode == "ON_DEMAND"

    @property
    def total_max_throughput_mbps(self) -> Optional[float]:
        if self.is_on_demand_mode:
            return None
        return self.shard_count * SHARD_THROUGHPUT_MBPS

    @property
    def total_max_throughput_records(self) -> Optional[int]:
        if self.is_on_demand_mode:
            return None
        return self.shard_count * SHARD_THROUGHPUT_RECORDS

    def estimated_monthly_cost(self):
        """Rough monthly cost in USD, or a note for ON_DEMAND streams."""
        if self.is_on_demand_mode:
            return "Variable - depends on usage"
        cost = self.shard_count * 24 * 30 * SHARD_HOUR_PRICE
        if self.retention_period > 24:
            extended_days = (self.retention_period - 24) / 24.0
            cost += self.shard_count * extended_days * EXTENDED_RETENTION_DAY_PRICE
        return round(cost, 2)


@register_resource("analytics")
def aws_kinesis_stream(synth, name, attributes=None):
    attrs = KinesisStreamAttributes.build(attributes)
    with synth.resource("aws_kinesis_stream", name) as stream:
        stream.name = attrs.name
        if not attrs.is_on_demand_mode:
            stream.shard_count = attrs.shard_count
        stream.retention_period = attrs.retention_period
        if attrs.shard_level_metrics:
            stream.shard_level_metrics = attrs.shard_level_metrics
        stream.encryption_type = attrs.encryption_type
        stream.kms_key_id = attrs.kms_key_id
        stream.block("stream_mode_details", attrs.stream_mode_details.compact_dict())
        stream.tags = attrs.tags
    return make_reference(
        synth,
        "aws_kinesis_stream",
        name,
        attrs,
        ["id", "arn", "name", "shard_count", "retention_period"],
        computed={
            "is_encrypted": attrs.encryption_type == "KMS",
            "is_on_demand_mode": attrs.is_on_demand_mode,
            "is_provisioned_mode": not attrs.is_on_demand_mode,
            "has_enhanced_metrics": bool(attrs.shard_level_metrics),
            "max_throughput_per_shard_mbps": SHARD_THROUGHPUT_MBPS,
            "max_throughput_per_shard_records": SHARD_THROUGHPUT_RECORDS,
            "total_max_throughput_mbps": attrs.total_max_throughput_mbps,
            "total_max_throughput_records": attrs.total_max_throughput_records,
            "retention_period_days": attrs.retention_period // 24,
            "estimated_monthly_cost": attrs.estimated_monthly_cost(),
        },
    )
