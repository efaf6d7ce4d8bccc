"""Tests for CloudWatch log group, metric alarm and Kinesis stream resources."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from modules.exceptions import ResourceValidationError
from modules.synthesizer import TerraformSynthesizer
from resource_classes.aws.analytics import aws_kinesis_stream
from resource_classes.aws.management import (
    aws_cloudwatch_log_group,
    aws_cloudwatch_metric_alarm,
)

TOPIC_ARN = "${aws_sns_topic.alerts.arn}"


@pytest.fixture
def synth():
    return TerraformSynthesizer()


def resource(synth, resource_type, name):
    return synth.synthesis["resource"][resource_type][name]


class TestLogGroup:
    def test_log_group(self, synth):
        ref = aws_cloudwatch_log_group(
            synth,
            "app",
            {"name": "/ecs/app", "retention_in_days": 30, "kms_key_id": "${aws_kms_key.logs.arn}"},
        )
        assert resource(synth, "aws_cloudwatch_log_group", "app") == {
            "name": "/ecs/app",
            "retention_in_days": 30,
            "kms_key_id": "${aws_kms_key.logs.arn}",
        }
        assert ref.has_retention is True
        assert ref.has_encryption is True
        assert ref.is_infrequent_access is False

    def test_interpolated_retention(self, synth):
        ref = aws_cloudwatch_log_group(
            synth, "app", {"name": "/app", "retention_in_days": "${var.log_retention}"}
        )
        assert ref.has_retention is True

    def test_unsupported_retention(self, synth):
        with pytest.raises(ResourceValidationError, match="retention_in_days 10 is not supported"):
            aws_cloudwatch_log_group(synth, "app", {"name": "/app", "retention_in_days": 10})

    @pytest.mark.parametrize(
        "name,message",
        [
            ("aws/lambda", "reserved prefix"),
            ("/app//logs", "consecutive slashes"),
            ("/app/", "cannot end with a slash"),
            ("/app logs", "invalid characters"),
        ],
    )
    def test_name_rules(self, synth, name, message):
        with pytest.raises(ResourceValidationError, match=message):
            aws_cloudwatch_log_group(synth, "app", {"name": name})

    def test_log_group_class(self, synth):
        ref = aws_cloudwatch_log_group(
            synth, "archive", {"name": "archive", "log_group_class": "INFREQUENT_ACCESS"}
        )
        assert ref.is_infrequent_access is True
        with pytest.raises(ResourceValidationError, match="STANDARD or INFREQUENT_ACCESS"):
            aws_cloudwatch_log_group(synth, "bad", {"name": "bad", "log_group_class": "COLD"})


class TestMetricAlarm:
    def traditional(self, **overrides):
        attributes = {
            "alarm_name": "high-cpu",
            "comparison_operator": "GreaterThanThreshold",
            "evaluation_periods": 3,
            "metric_name": "CPUUtilization",
            "namespace": "AWS/EC2",
            "period": 300,
            "statistic": "Average",
            "threshold": 80,
            "alarm_actions": [TOPIC_ARN],
            "dimensions": {"InstanceId": "${aws_instance.web.id}"},
        }
        attributes.update(overrides)
        return attributes

    def test_traditional_alarm(self, synth):
        ref = aws_cloudwatch_metric_alarm(synth, "cpu", self.traditional())
        body = resource(synth, "aws_cloudwatch_metric_alarm", "cpu")
        assert body["alarm_actions"] == [TOPIC_ARN]
        assert "ok_actions" not in body
        assert "metric_query" not in body
        assert body["dimensions"] == {"InstanceId": "${aws_instance.web.id}"}
        assert body["threshold"] == 80.0
        assert ref.is_traditional_alarm is True
        assert ref.is_metric_math_alarm is False

    def test_anomaly_detection_alarm(self, synth):
        """Metric math alarms emit one metric_query block per query."""
        ref = aws_cloudwatch_metric_alarm(
            synth,
            "anomaly",
            {
                "comparison_operator": "LessThanLowerOrGreaterThanUpperThreshold",
                "evaluation_periods": 2,
                "threshold_metric_id": "band",
                "metric_query": [
                    {
                        "id": "band",
                        "expression": "ANOMALY_DETECTION_BAND(requests, 2)",
                        "label": "Expected",
                        "return_data": True,
                    },
                    {
                        "id": "requests",
                        "return_data": True,
                        "metric": {
                            "metric_name": "RequestCount",
                            "namespace": "AWS/ApplicationELB",
                            "period": 60,
                            "stat": "Sum",
                            "dimensions": {"LoadBalancer": "app/web/123"},
                        },
                    },
                ],
            },
        )
        body = resource(synth, "aws_cloudwatch_metric_alarm", "anomaly")
        queries = body["metric_query"]
        assert [query["id"] for query in queries] == ["band", "requests"]
        assert queries[1]["metric"]["stat"] == "Sum"
        assert "expression" not in queries[1]
        assert body["threshold_metric_id"] == "band"
        assert "threshold" not in body
        assert ref.uses_anomaly_detector is True
        assert ref.is_metric_math_alarm is True

    def test_both_metric_sources(self, synth):
        with pytest.raises(ResourceValidationError) as exc_info:
            aws_cloudwatch_metric_alarm(
                synth, "bad", self.traditional(metric_query=[{"id": "m1", "expression": "1"}])
            )
        assert exc_info.value.message == "Cannot specify both metric_query and metric_name"

    def test_no_metric_source(self, synth):
        with pytest.raises(ResourceValidationError, match="Must specify either metric_query"):
            aws_cloudwatch_metric_alarm(
                synth, "bad", {"comparison_operator": "GreaterThanThreshold", "evaluation_periods": 1}
            )

    def test_traditional_needs_statistic(self, synth):
        with pytest.raises(ResourceValidationError, match="requires namespace, period"):
            aws_cloudwatch_metric_alarm(synth, "bad", self.traditional(statistic=None))

    def test_traditional_needs_threshold(self, synth):
        with pytest.raises(ResourceValidationError, match="Traditional alarm requires threshold"):
            aws_cloudwatch_metric_alarm(synth, "bad", self.traditional(threshold=None))

    def test_statistic_exclusive(self, synth):
        with pytest.raises(ResourceValidationError, match="both statistic and extended_statistic"):
            aws_cloudwatch_metric_alarm(synth, "bad", self.traditional(extended_statistic="p99"))

    def test_datapoints_limit(self, synth):
        with pytest.raises(ResourceValidationError, match="datapoints_to_alarm"):
            aws_cloudwatch_metric_alarm(synth, "bad", self.traditional(datapoints_to_alarm=5))

    def test_metric_math_threshold_exclusive(self, synth):
        with pytest.raises(ResourceValidationError, match="both threshold and threshold_metric_id"):
            aws_cloudwatch_metric_alarm(
                synth,
                "bad",
                {
                    "comparison_operator": "GreaterThanThreshold",
                    "evaluation_periods": 1,
                    "threshold": 1,
                    "threshold_metric_id": "e1",
                    "metric_query": [{"id": "e1", "expression": "SUM(METRICS())"}],
                },
            )

    def test_query_needs_source(self, synth):
        with pytest.raises(ResourceValidationError, match="must have either expression or metric"):
            aws_cloudwatch_metric_alarm(
                synth,
                "bad",
                {
                    "comparison_operator": "GreaterThanThreshold",
                    "evaluation_periods": 1,
                    "threshold": 1,
                    "metric_query": [{"id": "e1"}],
                },
            )


class TestKinesisStream:
    def test_provisioned_stream(self, synth):
        ref = aws_kinesis_stream(
            synth,
            "events",
            {
                "name": "events",
                "shard_count": 4,
                "retention_period": 168,
                "shard_level_metrics": ["IncomingBytes", "OutgoingBytes"],
            },
        )
        body = resource(synth, "aws_kinesis_stream", "events")
        assert body["shard_count"] == 4
        assert body["stream_mode_details"] == {"stream_mode": "PROVISIONED"}
        assert ref.total_max_throughput_mbps == 4.0
        assert ref.total_max_throughput_records == 4000
        assert ref.retention_period_days == 7
        assert ref.has_enhanced_metrics is True
        assert ref.estimated_monthly_cost == 43.75

    def test_on_demand_stream(self, synth):
        """On-demand streams leave shard_count out and have no fixed throughput."""
        ref = aws_kinesis_stream(
            synth,
            "clicks",
            {"name": "clicks", "stream_mode_details": {"stream_mode": "ON_DEMAND"}},
        )
        body = resource(synth, "aws_kinesis_stream", "clicks")
        assert "shard_count" not in body
        assert "shard_level_metrics" not in body
        assert ref.is_on_demand_mode is True
        assert ref.total_max_throughput_mbps is None
        assert ref.estimated_monthly_cost == "Variable - depends on usage"

    def test_on_demand_rejects_shards(self, synth):
        with pytest.raises(ResourceValidationError, match="Cannot specify shard_count"):
            aws_kinesis_stream(
                synth,
                "bad",
                {"name": "bad", "shard_count": 3, "stream_mode_details": {"stream_mode": "ON_DEMAND"}},
            )

    def test_kms_requires_key(self, synth):
        with pytest.raises(ResourceValidationError) as exc_info:
            aws_kinesis_stream(synth, "bad", {"name": "bad", "encryption_type": "KMS"})
        assert exc_info.value.message == "KMS key ID is required when encryption_type is 'KMS'"

    def test_encrypted_stream(self, synth):
        ref = aws_kinesis_stream(
            synth, "secure", {"name": "secure", "encryption_type": "KMS", "kms_key_id": "alias/kinesis"}
        )
        assert ref.is_encrypted is True
        assert ref.estimated_monthly_cost == 10.8

    def test_retention_bounds(self, synth):
        with pytest.raises(ResourceValidationError):
            aws_kinesis_stream(synth, "bad", {"name": "bad", "retention_period": 12})
