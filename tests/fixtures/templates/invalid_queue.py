from resource_classes.aws.integration import aws_sqs_queue


def template(synth, variables):
    aws_sqs_queue(synth, "jobs", {"name": "jobs", "fifo_queue": True})
