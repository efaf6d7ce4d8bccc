"""
Storage resources: S3 buckets.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, model_validator

from modules.attributes import BaseAttributes
from modules.registry import register_resource
from modules.types import AwsTags, JsonDocument

from . import make_reference

StorageClass = Literal[
    "STANDARD_IA",
    "ONEZONE_IA",
    "INTELLIGENT_TIERING",
    "GLACIER",
    "GLACIER_IR",
    "DEEP_ARCHIVE",
]


class S3Versioning(BaseAttributes):
    enabled: bool = False
    mfa_delete: Optional[bool] = None


class S3EncryptionDefault(BaseAttributes):
    sse_algorithm: Literal["AES256", "aws:kms", "aws:kms:dsse"] = "AES256"
    kms_master_key_id: Optional[str] = None


class S3EncryptionRule(BaseAttributes):
    apply_server_side_encryption_by_default: S3EncryptionDefault = Field(
        default_factory=S3EncryptionDefault
    )
    bucket_key_enabled: Optional[bool] = None


class S3ServerSideEncryption(BaseAttributes):
    rule: S3EncryptionRule = Field(default_factory=S3EncryptionRule)

    @property
    def sse_algorithm(self) -> str:
        return self.rule.apply_server_side_encryption_by_default.sse_algorithm


class S3Transition(BaseAttributes):
    days: Optional[int] = Field(default=None, ge=0)
    date: Optional[str] = None
    storage_class: StorageClass


class S3Expiration(BaseAttributes):
    days: Optional[int] = Field(default=None, ge=1)
    date: Optional[str] = None
    expired_object_delete_marker: Optional[bool] = None


class S3NoncurrentTransition(BaseAttributes):
    days: int = Field(ge=1)
    storage_class: StorageClass


class S3NoncurrentExpiration(BaseAttributes):
    days: int = Field(ge=1)


class S3LifecycleRule(BaseAttributes):
    id: str
    enabled: bool = True
    prefix: Optional[str] = None
    tags: Dict[str, str] = Field(default_factory=dict)
    transition: List[S3Transition] = Field(default_factory=list)
    expiration: Optional[S3Expiration] = None
    noncurrent_version_transition: List[S3NoncurrentTransition] = Field(
        default_factory=list
    )
    noncurrent_version_expiration: Optional[S3NoncurrentExpiration] = None
    abort_incomplete_multipart_upload_days: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def check_action(self):
        if not (
            self.transition
            or self.expiration
            or self.noncurrent_version_transition
            or self.noncurrent_version_expiration
        ):
            raise ValueError(
                f"Lifecycle rule '{self.id}' must have at least one action "
                "(transition, expiration, etc.)"
            )
        return self


class S3CorsRule(BaseAttributes):
    allowed_methods: List[Literal["GET", "PUT", "POST", "DELETE", "HEAD"]] = Field(
        min_length=1
    )
    allowed_origins: List[str] = Field(min_length=1)
    allowed_headers: List[str] = Field(default_factory=list)
    expose_headers: List[str] = Field(default_factory=list)
    max_age_seconds: Optional[int] = Field(default=None, ge=0)


class S3RedirectAllRequests(BaseAttributes):
    host_name: str
    protocol: Optional[Literal["http", "https"]] = None


class S3Website(BaseAttributes):
    index_document: Optional[str] = None
    error_document: Optional[str] = None
    redirect_all_requests_to: Optional[S3RedirectAllRequests] = None
    routing_rules: Optional[str] = None

    @model_validator(mode="after")
    def check_redirect(self):
        has_documents = self.index_document or self.error_document
        if self.redirect_all_requests_to and has_documents:
            raise ValueError(
                "Cannot specify both redirect_all_requests_to and index/error documents"
            )
        return self


class S3Logging(BaseAttributes):
    target_bucket: str
    target_prefix: Optional[str] = None


class S3DefaultRetention(BaseAttributes):
    mode: Literal["COMPLIANCE", "GOVERNANCE"]
    days: Optional[int] = Field(default=None, ge=1)
    years: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def check_period(self):
        if (self.days is None) == (self.years is None):
            raise ValueError("Default retention requires exactly one of days or years")
        return self


class S3ObjectLockRule(BaseAttributes):
    default_retention: S3DefaultRetention


class S3ObjectLockConfiguration(BaseAttributes):
    object_lock_enabled: Optional[Literal["Enabled"]] = None
    rule: Optional[S3ObjectLockRule] = None


class S3PublicAccessBlock(BaseAttributes):
    block_public_acls: Optional[bool] = None
    block_public_policy: Optional[bool] = None
    ignore_public_acls: Optional[bool] = None
    restrict_public_buckets: Optional[bool] = None


class S3BucketAttributes(BaseAttributes):
    """Attributes of an S3 bucket.

    Encryption defaults to SSE-S3 (``AES256``). ``aws:kms`` needs a key id,
    object lock needs versioning and every lifecycle rule needs an action.
    """

    resource_type = "aws_s3_bucket"

    bucket: Optional[str] = None
    acl: Literal[
        "private",
        "public-read",
        "public-read-write",
        "authenticated-read",
        "log-delivery-write",
    ] = "private"
    versioning: S3Versioning = Field(default_factory=S3Versioning)
    server_side_encryption_configuration: S3ServerSideEncryption = Field(
        default_factory=S3ServerSideEncryption
    )
    lifecycle_rule: List[S3LifecycleRule] = Field(default_factory=list)
    cors_rule: List[S3CorsRule] = Field(default_factory=list)
    website: Optional[S3Website] = None
    logging: Optional[S3Logging] = None
    object_lock_configuration: Optional[S3ObjectLockConfiguration] = None
    public_access_block_configuration: S3PublicAccessBlock = Field(
        default_factory=S3PublicAccessBlock
    )
    policy: Optional[JsonDocument] = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_bucket(self):
        rule = self.server_side_encryption_configuration.rule
        default = rule.apply_server_side_encryption_by_default
        if default.sse_algorithm == "aws:kms" and not default.kms_master_key_id:
            raise ValueError(
                "kms_master_key_id is required when using aws:kms encryption"
            )
        if (
            self.object_lock_configuration
            and self.object_lock_configuration.object_lock_enabled
            and not self.versioning.enabled
        ):
            raise ValueError("Object lock requires versioning to be enabled")
        return self

    @property
    def website_enabled(self) -> bool:
        return bool(
            self.website
            and (self.website.index_document or self.website.redirect_all_requests_to)
        )

    @property
    def public_access_blocked(self) -> bool:
        block = self.public_access_block_configuration
        return all(
            value is True
            for value in (
                block.block_public_acls,
                block.block_public_policy,
                block.ignore_public_acls,
                block.restrict_public_buckets,
            )
        )


def _lifecycle_block(rule: S3LifecycleRule) -> Dict[str, Any]:
    block = rule.compact_dict()
    block["enabled"] = rule.enabled
    return block


@register_resource("storage")
def aws_s3_bucket(synth, name, attributes=None):
    """Declare an S3 bucket with inline versioning, encryption and lifecycle blocks."""
    attrs = S3BucketAttributes.build(attributes)
    with synth.resource("aws_s3_bucket", name) as bucket:
        bucket.bucket = attrs.bucket
        bucket.acl = attrs.acl
        if attrs.versioning.enabled or attrs.versioning.mfa_delete is not None:
            bucket.block("versioning", attrs.versioning.compact_dict())
        bucket.block(
            "server_side_encryption_configuration",
            attrs.server_side_encryption_configuration.compact_dict(),
        )
        for rule in attrs.lifecycle_rule:
            bucket.block("lifecycle_rule", _lifecycle_block(rule))
        for rule in attrs.cors_rule:
            bucket.block("cors_rule", rule.compact_dict())
        if attrs.website:
            bucket.block("website", attrs.website.compact_dict())
        if attrs.logging:
            bucket.block("logging", attrs.logging.compact_dict())
        if attrs.object_lock_configuration:
            bucket.block(
                "object_lock_configuration",
                attrs.object_lock_configuration.compact_dict(),
            )
        bucket.policy = attrs.policy
        bucket.tags = attrs.tags
    return make_reference(
        synth,
        "aws_s3_bucket",
        name,
        attrs,
        [
            "id",
            "arn",
            "bucket",
            "bucket_domain_name",
            "bucket_regional_domain_name",
            "hosted_zone_id",
            "region",
            "website_endpoint",
            "website_domain",
        ],
        computed={
            "encryption_enabled": True,
            "kms_encrypted": attrs.server_side_encryption_configuration.sse_algorithm
            == "aws:kms",
            "versioning_enabled": attrs.versioning.enabled,
            "website_enabled": attrs.website_enabled,
            "lifecycle_rules_count": len(attrs.lifecycle_rule),
            "public_access_blocked": attrs.public_access_blocked,
        },
    )
