"""
SQS Queue Components - Message Queue Infrastructure

This module provides three components for SQS-based messaging:

1. SqsQueue: Queue with its own terminal DLQ (dead letter queue)
2. RetryQueues: Primary queue -> proxy DLQ -> terminal DLQ chain
3. QueueTriggeredLambda: Connects a queue to a Lambda with IAM

Retry Chain:
------------
The pricing worker gets exactly one attempt per delivery:

    GetPricingEventQueue --(1 receive)--> GetPricingEventProxyDLQ --(1 receive)--> GetPricingEventDLQ
            ^                                      |
            |                                      v
            +------- delayed re-send -------- message-retry-handler

The retry handler consumes the proxy DLQ and schedules a delayed re-send of
the message to the primary queue. If the handler itself fails, the message
lands in the terminal DLQ (14-day retention) for inspection.

The proxy DLQ carries a redrive-allow policy naming the primary queue, and the
primary queue's redrive policy names the proxy DLQ. Declared inline these
would reference each other, so the redrive policies are standalone
aws.sqs.RedrivePolicy resources created after both queues exist.

Visibility Timeout:
-------------------
Must be >= Lambda timeout (otherwise the message re-appears while the
function is still processing it). QueueTriggeredLambda enforces this.
"""

import pulumi
import pulumi_aws as aws

from wh_infra.errors import InfraConfigError
from wh_infra.policies import (
    SQS_SERVICE,
    redrive_allow_policy,
    redrive_policy,
    sqs_consumer_policy,
)
from wh_infra.validation import validate_queue_name, validate_queue_settings


def is_fifo(queue_name: str) -> bool | None:
    """FIFO queues are marked by their .fifo suffix; None leaves a standard queue."""
    return True if queue_name.endswith(".fifo") else None


def validate_fifo_chain(*queue_names: str) -> None:
    """A FIFO queue can only dead-letter into another FIFO queue."""
    if len({name.endswith(".fifo") for name in queue_names}) > 1:
        raise InfraConfigError.invalid_queue_settings(
            f"queues {', '.join(queue_names)} mix FIFO and standard types"
        )


class SqsQueue(pulumi.ComponentResource):
    """SQS Queue with automatic Dead Letter Queue for failed messages."""

    def __init__(
        self,
        name: str,
        queue_name: str,
        dlq_name: str,
        visibility_timeout_seconds: int = 120,
        message_retention_seconds: int | None = None,
        delay_seconds: int = 0,
        max_receive_count: int = 5,
        dlq_retention_seconds: int = 1209600,  # 14 days
        dlq_visibility_timeout_seconds: int = 120,
        tags: dict[str, str] = None,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:sqs:Queue", name, None, opts)

        validate_queue_name(queue_name)
        validate_queue_name(dlq_name)
        validate_fifo_chain(queue_name, dlq_name)
        validate_queue_settings(
            visibility_timeout_seconds=visibility_timeout_seconds,
            message_retention_seconds=message_retention_seconds,
            delay_seconds=delay_seconds,
            max_receive_count=max_receive_count,
        )
        validate_queue_settings(
            visibility_timeout_seconds=dlq_visibility_timeout_seconds,
            message_retention_seconds=dlq_retention_seconds,
        )

        self.visibility_timeout_seconds = visibility_timeout_seconds

        # Messages that fail max_receive_count times end up here
        self.dlq = aws.sqs.Queue(
            f"{name}-dlq",
            name=dlq_name,
            fifo_queue=is_fifo(dlq_name),
            message_retention_seconds=dlq_retention_seconds,
            visibility_timeout_seconds=dlq_visibility_timeout_seconds,
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.queue = aws.sqs.Queue(
            f"{name}-queue",
            name=queue_name,
            fifo_queue=is_fifo(queue_name),
            visibility_timeout_seconds=visibility_timeout_seconds,
            message_retention_seconds=message_retention_seconds,
            delay_seconds=delay_seconds,
            redrive_policy=self.dlq.arn.apply(
                lambda arn: redrive_policy(arn, max_receive_count)
            ),
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.register_outputs(
            {
                "queue_url": self.queue.url,
                "queue_arn": self.queue.arn,
                "dlq_url": self.dlq.url,
                "dlq_arn": self.dlq.arn,
            }
        )


class RetryQueues(pulumi.ComponentResource):
    """Primary work queue with a proxy DLQ (retry) and a terminal DLQ."""

    def __init__(
        self,
        name: str,
        queue_name: str,
        proxy_dlq_name: str,
        dlq_name: str,
        visibility_timeout_seconds: int = 120,
        dlq_retention_seconds: int = 1209600,  # 14 days
        max_receive_count: int = 1,
        tags: dict[str, str] = None,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:sqs:RetryQueues", name, None, opts)

        for sqs_name in (queue_name, proxy_dlq_name, dlq_name):
            validate_queue_name(sqs_name)
        validate_fifo_chain(queue_name, proxy_dlq_name, dlq_name)
        validate_queue_settings(
            visibility_timeout_seconds=visibility_timeout_seconds,
            message_retention_seconds=dlq_retention_seconds,
            max_receive_count=max_receive_count,
        )

        self.visibility_timeout_seconds = visibility_timeout_seconds

        # =====================================================================
        # Primary Queue - work messages from the schedule and the retry handler
        # =====================================================================
        self.queue = aws.sqs.Queue(
            f"{name}-queue",
            name=queue_name,
            fifo_queue=is_fifo(queue_name),
            visibility_timeout_seconds=visibility_timeout_seconds,
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # =====================================================================
        # Terminal DLQ - nothing consumes it, kept for investigation
        # =====================================================================
        # No tags: matches the queue as it already exists in the account
        self.dlq = aws.sqs.Queue(
            f"{name}-dlq",
            name=dlq_name,
            fifo_queue=is_fifo(dlq_name),
            message_retention_seconds=dlq_retention_seconds,
            visibility_timeout_seconds=visibility_timeout_seconds,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # =====================================================================
        # Proxy DLQ - consumed by the retry handler
        # =====================================================================
        self.proxy_dlq = aws.sqs.Queue(
            f"{name}-proxy-dlq",
            name=proxy_dlq_name,
            fifo_queue=is_fifo(proxy_dlq_name),
            visibility_timeout_seconds=visibility_timeout_seconds,
            redrive_allow_policy=self.queue.arn.apply(
                lambda arn: redrive_allow_policy([arn])
            ),
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # =====================================================================
        # Redrive Chain - primary -> proxy DLQ -> terminal DLQ
        # =====================================================================
        self.queue_redrive = aws.sqs.RedrivePolicy(
            f"{name}-queue-redrive",
            queue_url=self.queue.id,
            redrive_policy=self.proxy_dlq.arn.apply(
                lambda arn: redrive_policy(arn, max_receive_count)
            ),
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.proxy_dlq_redrive = aws.sqs.RedrivePolicy(
            f"{name}-proxy-dlq-redrive",
            queue_url=self.proxy_dlq.id,
            redrive_policy=self.dlq.arn.apply(
                lambda arn: redrive_policy(arn, max_receive_count)
            ),
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.register_outputs(
            {
                "queue_url": self.queue.url,
                "queue_arn": self.queue.arn,
                "proxy_dlq_url": self.proxy_dlq.url,
                "proxy_dlq_arn": self.proxy_dlq.arn,
                "dlq_url": self.dlq.url,
                "dlq_arn": self.dlq.arn,
            }
        )


class QueueTriggeredLambda(pulumi.ComponentResource):
    """Connects an SQS queue to a Lambda with an event source mapping.

    This sets up:
    1. IAM policy: Lambda can receive/delete messages from the queue
    2. Lambda permission: SQS may invoke the function (scoped to the queue)
    3. Event source mapping: Lambda service polls the queue and invokes

    batch_size defaults to 1: each pricing request is processed, retried
    and dead-lettered on its own.
    """

    def __init__(
        self,
        name: str,
        queue: aws.sqs.Queue,
        lambda_function: "LambdaFunction",  # Forward reference
        visibility_timeout_seconds: int,
        batch_size: int = 1,
        tags: dict[str, str] = None,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:sqs:TriggeredLambda", name, None, opts)

        if visibility_timeout_seconds < lambda_function.timeout:
            raise InfraConfigError.invalid_queue_settings(
                f"{name}: visibility timeout {visibility_timeout_seconds}s is shorter "
                f"than the function timeout {lambda_function.timeout}s"
            )

        self.policy = lambda_function.attach_policy(
            f"{name}-sqs-policy",
            description="IAM policy for Lambda to Receive and Delete SQS Messages",
            document=queue.arn.apply(sqs_consumer_policy),
            tags=tags,
        )

        self.permission = aws.lambda_.Permission(
            f"{name}-permission",
            action="lambda:InvokeFunction",
            function=lambda_function.function.name,
            principal=SQS_SERVICE,
            source_arn=queue.arn,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.event_source_mapping = aws.lambda_.EventSourceMapping(
            f"{name}-esm",
            event_source_arn=queue.arn,
            function_name=lambda_function.function.arn,
            batch_size=batch_size,
            opts=pulumi.ResourceOptions(parent=self, depends_on=[self.policy]),
        )

        self.register_outputs(
            {
                "event_source_mapping_uuid": self.event_source_mapping.uuid,
            }
        )
