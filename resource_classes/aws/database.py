"""
Database resources: RDS instances and DynamoDB tables.
"""

from typing import Any, List, Literal, Optional

from pydantic import Field, model_validator

from modules.attributes import BaseAttributes
from modules.registry import register_resource
from modules.types import AwsTags

from . import make_reference

RDS_ENGINES = Literal[
    "mysql",
    "postgres",
    "mariadb",
    "oracle-se",
    "oracle-se1",
    "oracle-se2",
    "oracle-ee",
    "sqlserver-ee",
    "sqlserver-se",
    "sqlserver-ex",
    "sqlserver-web",
    "aurora",
    "aurora-mysql",
    "aurora-postgresql",
]

# On-demand USD per hour, single-AZ
RDS_HOURLY_COSTS = {
    "db.t3.micro": 0.017,
    "db.t3.small": 0.034,
    "db.t3.medium": 0.068,
    "db.t3.large": 0.136,
    "db.m5.large": 0.171,
    "db.m5.xlarge": 0.342,
    "db.m5.2xlarge": 0.684,
    "db.r5.large": 0.24,
    "db.r5.xlarge": 0.48,
    "db.r5.2xlarge": 0.96,
}
RDS_DEFAULT_HOURLY_COST = 0.1
RDS_STORAGE_COSTS = {
    "standard": 0.10,
    "gp2": 0.115,
    "gp3": 0.115,
    "io1": 0.125,
    "io2": 0.125,
}
HOURS_PER_MONTH = 730


class DbInstanceAttributes(BaseAttributes):
    """Attributes of an RDS DB instance.

    The master password is managed by Secrets Manager unless a ``password`` is
    given. Aurora engines size storage and handle Multi-AZ at the cluster, so
    ``allocated_storage`` and ``multi_az`` are rejected for them.
    """

    resource_type = "aws_db_instance"

    identifier: Optional[str] = None
    identifier_prefix: Optional[str] = None
    engine: RDS_ENGINES
    engine_version: Optional[str] = None
    instance_class: str
    allocated_storage: Optional[int] = Field(default=None, ge=20, le=65536)
    storage_type: Literal["standard", "gp2", "gp3", "io1", "io2"] = "gp3"
    storage_encrypted: bool = True
    kms_key_id: Optional[str] = None
    iops: Optional[int] = None
    db_name: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    manage_master_user_password: bool = True
    db_subnet_group_name: Optional[str] = None
    vpc_security_group_ids: List[str] = Field(default_factory=list)
    availability_zone: Optional[str] = None
    multi_az: bool = False
    publicly_accessible: bool = False
    backup_retention_period: int = Field(default=7, ge=0, le=35)
    backup_window: Optional[str] = None
    maintenance_window: Optional[str] = None
    enabled_cloudwatch_logs_exports: List[str] = Field(default_factory=list)
    performance_insights_enabled: bool = False
    performance_insights_retention_period: int = 7
    auto_minor_version_upgrade: bool = True
    deletion_protection: bool = False
    skip_final_snapshot: bool = True
    final_snapshot_identifier: Optional[str] = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def default_password_management(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if data.get("password") and "manage_master_user_password" not in data:
            data = {**data, "manage_master_user_password": False}
        return data

    @model_validator(mode="after")
    def check_instance(self):
        if self.identifier and self.identifier_prefix:
            raise ValueError("Cannot specify both 'identifier' and 'identifier_prefix'")
        if self.iops is not None and self.storage_type not in ("io1", "io2"):
            raise ValueError("IOPS can only be specified for io1 or io2 storage types")
        if self.password and self.manage_master_user_password:
            raise ValueError(
                "Cannot specify both 'password' and 'manage_master_user_password'"
            )
        if self.is_aurora:
            if self.allocated_storage is not None:
                raise ValueError("Aurora engines do not support 'allocated_storage'")
            if self.multi_az:
                raise ValueError("Aurora engines handle multi-AZ at the cluster level")
        elif self.allocated_storage is None:
            raise ValueError(
                f"'allocated_storage' is required for {self.engine} engines"
            )
        if self.engine.startswith("sqlserver") and self.db_name:
            raise ValueError("SQL Server engines do not support 'db_name'")
        if self.performance_insights_retention_period not in (7, 731) and not (
            self.performance_insights_retention_period % 31 == 0
            and 31 <= self.performance_insights_retention_period <= 713
        ):
            raise ValueError(
                "performance_insights_retention_period must be 7, 731, "
                "or a multiple of 31"
            )
        return self

    @property
    def is_aurora(self) -> bool:
        return self.engine.startswith("aurora")

    @property
    def engine_family(self) -> str:
        if self.engine in ("aurora", "aurora-mysql"):
            return "mysql"
        if self.engine in ("postgres", "aurora-postgresql"):
            return "postgresql"
        return self.engine.split("-", 1)[0]

    @property
    def is_serverless(self) -> bool:
        return self.instance_class == "db.serverless"

    @property
    def estimated_monthly_cost(self) -> str:
        hourly = RDS_HOURLY_COSTS.get(self.instance_class, RDS_DEFAULT_HOURLY_COST)
        compute = hourly * HOURS_PER_MONTH
        storage = (self.allocated_storage or 0) * RDS_STORAGE_COSTS[self.storage_type]
        total = compute + storage
        if self.multi_az:
            total *= 2
        return f"~${total:.2f}/month"


@register_resource("database")
def aws_db_instance(synth, name, attributes=None):
    attrs = DbInstanceAttributes.build(attributes)
    with synth.resource("aws_db_instance", name) as db:
        db.identifier = attrs.identifier
        db.identifier_prefix = attrs.identifier_prefix
        db.engine = attrs.engine
        db.engine_version = attrs.engine_version
        db.instance_class = attrs.instance_class
        if attrs.allocated_storage:
            db.allocated_storage = attrs.allocated_storage
            db.storage_type = attrs.storage_type
        db.storage_encrypted = attrs.storage_encrypted
        db.kms_key_id = attrs.kms_key_id
        db.iops = attrs.iops
        db.db_name = attrs.db_name
        db.username = attrs.username
        db.password = attrs.password
        if attrs.manage_master_user_password:
            db.manage_master_user_password = True
        db.db_subnet_group_name = attrs.db_subnet_group_name
        if attrs.vpc_security_group_ids:
            db.vpc_security_group_ids = attrs.vpc_security_group_ids
        db.availability_zone = attrs.availability_zone
        db.multi_az = attrs.multi_az
        db.publicly_accessible = attrs.publicly_accessible
        db.backup_retention_period = attrs.backup_retention_period
        db.backup_window = attrs.backup_window
        db.maintenance_window = attrs.maintenance_window
        if attrs.enabled_cloudwatch_logs_exports:
            db.enabled_cloudwatch_logs_exports = attrs.enabled_cloudwatch_logs_exports
        db.performance_insights_enabled = attrs.performance_insights_enabled
        if attrs.performance_insights_enabled:
            db.performance_insights_retention_period = (
                attrs.performance_insights_retention_period
            )
        db.auto_minor_version_upgrade = attrs.auto_minor_version_upgrade
        db.deletion_protection = attrs.deletion_protection
        db.skip_final_snapshot = attrs.skip_final_snapshot
        if not attrs.skip_final_snapshot:
            db.final_snapshot_identifier = attrs.final_snapshot_identifier
        db.tags = attrs.tags
    return make_reference(
        synth,
        "aws_db_instance",
        name,
        attrs,
        [
            "id",
            "arn",
            "address",
            "endpoint",
            "hosted_zone_id",
            "resource_id",
            "status",
            "port",
        ],
        computed={
            "engine_family": attrs.engine_family,
            "is_aurora": attrs.is_aurora,
            "is_serverless": attrs.is_serverless,
            "requires_subnet_group": not attrs.is_aurora,
            "supports_encryption": True,
            "estimated_monthly_cost": attrs.estimated_monthly_cost,
        },
    )


ProjectionType = Literal["ALL", "KEYS_ONLY", "INCLUDE"]
TableClass = Literal["STANDARD", "STANDARD_INFREQUENT_ACCESS"]

MAX_GLOBAL_SECONDARY_INDEXES = 20
MAX_LOCAL_SECONDARY_INDEXES = 10

# Provisioned capacity, USD per capacity unit hour
READ_CAPACITY_HOURLY_COST = 0.00013
WRITE_CAPACITY_HOURLY_COST = 0.00065


class DynamoDbAttributeDefinition(BaseAttributes):
    name: str
    type: Literal["S", "N", "B"]


class GlobalSecondaryIndex(BaseAttributes):
    name: str
    hash_key: str
    range_key: Optional[str] = None
    write_capacity: Optional[int] = Field(default=None, ge=1, le=40000)
    read_capacity: Optional[int] = Field(default=None, ge=1, le=40000)
    projection_type: ProjectionType = "ALL"
    non_key_attributes: Optional[List[str]] = None


class LocalSecondaryIndex(BaseAttributes):
    name: str
    range_key: str
    projection_type: ProjectionType = "ALL"
    non_key_attributes: Optional[List[str]] = None


class DynamoDbTtl(BaseAttributes):
    attribute_name: str
    enabled: bool = True


class DynamoDbServerSideEncryption(BaseAttributes):
    enabled: bool = True
    kms_key_id: Optional[str] = None


class ImportS3BucketSource(BaseAttributes):
    bucket: str
    bucket_owner: Optional[str] = None
    key_prefix: Optional[str] = None


class ImportCsvOptions(BaseAttributes):
    delimiter: Optional[str] = None
    header_list: Optional[List[str]] = None


class ImportInputFormatOptions(BaseAttributes):
    csv: Optional[ImportCsvOptions] = None


class DynamoDbImportTable(BaseAttributes):
    input_format: Literal["DYNAMODB_EXPORT", "ION", "CSV"]
    s3_bucket_source: ImportS3BucketSource
    input_format_options: Optional[ImportInputFormatOptions] = None
    input_compression_type: Optional[Literal["GZIP", "ZSTD", "NONE"]] = None


class ReplicaGlobalSecondaryIndex(BaseAttributes):
    name: str
    read_capacity: Optional[int] = Field(default=None, ge=1)
    write_capacity: Optional[int] = Field(default=None, ge=1)


class DynamoDbReplica(BaseAttributes):
    region_name: str
    kms_key_id: Optional[str] = None
    point_in_time_recovery: Optional[bool] = None
    global_secondary_index: Optional[List[ReplicaGlobalSecondaryIndex]] = None
    table_class: Optional[TableClass] = None


def _check_projection(index) -> None:
    if index.projection_type == "INCLUDE" and not index.non_key_attributes:
        raise ValueError(
            f"Index {index.name} with INCLUDE projection requires non_key_attributes"
        )
    if index.projection_type != "INCLUDE" and index.non_key_attributes:
        raise ValueError(
            f"Index {index.name} cannot have non_key_attributes unless "
            "projection_type is INCLUDE"
        )


class DynamoDbTableAttributes(BaseAttributes):
    """Attributes of a DynamoDB table.

    Every key used by the table or one of its indexes needs an ``attribute``
    definition. Provisioned tables (and their global indexes) need read and
    write capacity; on-demand tables reject them. Setting
    ``stream_view_type`` turns the stream on.
    """

    resource_type = "aws_dynamodb_table"

    name: str
    billing_mode: Literal["PAY_PER_REQUEST", "PROVISIONED"] = "PAY_PER_REQUEST"
    attribute: List[DynamoDbAttributeDefinition] = Field(min_length=1)
    hash_key: str
    range_key: Optional[str] = None
    read_capacity: Optional[int] = Field(default=None, ge=1, le=40000)
    write_capacity: Optional[int] = Field(default=None, ge=1, le=40000)
    global_secondary_index: List[GlobalSecondaryIndex] = Field(default_factory=list)
    local_secondary_index: List[LocalSecondaryIndex] = Field(default_factory=list)
    ttl: Optional[DynamoDbTtl] = None
    stream_enabled: Optional[bool] = None
    stream_view_type: Optional[
        Literal["KEYS_ONLY", "NEW_IMAGE", "OLD_IMAGE", "NEW_AND_OLD_IMAGES"]
    ] = None
    point_in_time_recovery_enabled: bool = False
    server_side_encryption: Optional[DynamoDbServerSideEncryption] = None
    deletion_protection_enabled: bool = False
    table_class: TableClass = "STANDARD"
    restore_source_name: Optional[str] = None
    restore_source_table_arn: Optional[str] = None
    restore_to_time: Optional[str] = None
    restore_date_time: Optional[str] = None
    import_table: Optional[DynamoDbImportTable] = None
    replica: List[DynamoDbReplica] = Field(default_factory=list)
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def enable_stream(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if data.get("stream_view_type") and not data.get("stream_enabled"):
            data = {**data, "stream_enabled": True}
        return data

    @model_validator(mode="after")
    def check_table(self):
        if self.billing_mode == "PROVISIONED":
            if self.read_capacity is None or self.write_capacity is None:
                raise ValueError(
                    "PROVISIONED billing mode requires read_capacity and write_capacity"
                )
            for index in self.global_secondary_index:
                if index.read_capacity is None or index.write_capacity is None:
                    raise ValueError(
                        f"Global Secondary Index {index.name} requires read_capacity "
                        "and write_capacity for PROVISIONED billing mode"
                    )
        elif self.read_capacity is not None or self.write_capacity is not None:
            raise ValueError(
                "PAY_PER_REQUEST billing mode does not support read_capacity "
                "or write_capacity"
            )
        if self.stream_enabled and not self.stream_view_type:
            raise ValueError("stream_view_type is required when stream_enabled is true")
        if len(self.global_secondary_index) > MAX_GLOBAL_SECONDARY_INDEXES:
            raise ValueError(
                f"Maximum of {MAX_GLOBAL_SECONDARY_INDEXES} Global Secondary Indexes "
                "allowed per table"
            )
        if len(self.local_secondary_index) > MAX_LOCAL_SECONDARY_INDEXES:
            raise ValueError(
                f"Maximum of {MAX_LOCAL_SECONDARY_INDEXES} Local Secondary Indexes "
                "allowed per table"
            )
        if self.local_secondary_index and not self.range_key:
            raise ValueError(
                "Local Secondary Indexes require the table to have a range_key"
            )
        for index in [*self.global_secondary_index, *self.local_secondary_index]:
            _check_projection(index)

        defined = {definition.name for definition in self.attribute}
        missing = sorted(self.key_attributes - defined)
        if missing:
            raise ValueError(f"Missing attribute definitions for: {', '.join(missing)}")
        return self

    @property
    def key_attributes(self) -> set:
        keys = {self.hash_key}
        if self.range_key:
            keys.add(self.range_key)
        for index in self.global_secondary_index:
            keys.add(index.hash_key)
            if index.range_key:
                keys.add(index.range_key)
        for index in self.local_secondary_index:
            keys.add(index.range_key)
        return keys

    @property
    def total_indexes(self) -> int:
        return len(self.global_secondary_index) + len(self.local_secondary_index)

    @property
    def estimated_monthly_cost(self) -> str:
        if self.billing_mode == "PAY_PER_REQUEST":
            return "Variable (Pay per request)"
        indexes = self.global_secondary_index
        read = self.read_capacity + sum(index.read_capacity for index in indexes)
        write = self.write_capacity + sum(index.write_capacity for index in indexes)
        hourly = read * READ_CAPACITY_HOURLY_COST + write * WRITE_CAPACITY_HOURLY_COST
        return f"~${hourly * HOURS_PER_MONTH:.2f}/month"


@register_resource("database")
def aws_dynamodb_table(synth, name, attributes=None):
    """Declare a DynamoDB table.

    Attribute definitions, indexes and replicas become repeated blocks.
    """
    attrs = DynamoDbTableAttributes.build(attributes)
    with synth.resource("aws_dynamodb_table", name) as table:
        table.name = attrs.name
        table.billing_mode = attrs.billing_mode
        table.hash_key = attrs.hash_key
        table.range_key = attrs.range_key
        table.read_capacity = attrs.read_capacity
        table.write_capacity = attrs.write_capacity
        for definition in attrs.attribute:
            table.block("attribute", definition.to_dict())
        for index in attrs.global_secondary_index:
            table.block("global_secondary_index", index.compact_dict())
        for index in attrs.local_secondary_index:
            table.block("local_secondary_index", index.compact_dict())
        if attrs.ttl:
            table.block("ttl", attrs.ttl.to_dict())
        if attrs.stream_enabled:
            table.stream_enabled = True
            table.stream_view_type = attrs.stream_view_type
        if attrs.point_in_time_recovery_enabled:
            table.block("point_in_time_recovery", {"enabled": True})
        if attrs.server_side_encryption:
            table.block(
                "server_side_encryption", attrs.server_side_encryption.compact_dict()
            )
        if attrs.deletion_protection_enabled:
            table.deletion_protection_enabled = True
        table.table_class = attrs.table_class
        table.restore_source_name = attrs.restore_source_name
        table.restore_source_table_arn = attrs.restore_source_table_arn
        table.restore_to_time = attrs.restore_to_time
        table.restore_date_time = attrs.restore_date_time
        if attrs.import_table:
            table.block("import_table", attrs.import_table.compact_dict())
        for replica in attrs.replica:
            table.block("replica", replica.compact_dict())
        table.tags = attrs.tags
    return make_reference(
        synth,
        "aws_dynamodb_table",
        name,
        attrs,
        [
            "id",
            "arn",
            "name",
            "hash_key",
            "range_key",
            "billing_mode",
            "stream_arn",
            "stream_label",
            "tags_all",
        ],
        computed={
            "is_pay_per_request": attrs.billing_mode == "PAY_PER_REQUEST",
            "is_provisioned": attrs.billing_mode == "PROVISIONED",
            "has_range_key": attrs.range_key is not None,
            "has_gsi": bool(attrs.global_secondary_index),
            "has_lsi": bool(attrs.local_secondary_index),
            "has_ttl": attrs.ttl is not None,
            "has_stream": bool(attrs.stream_enabled),
            "has_encryption": bool(
                attrs.server_side_encryption and attrs.server_side_encryption.enabled
            ),
            "has_pitr": attrs.point_in_time_recovery_enabled,
            "is_global_table": bool(attrs.replica),
            "total_indexes": attrs.total_indexes,
            "estimated_monthly_cost": attrs.estimated_monthly_cost,
        },
    )
