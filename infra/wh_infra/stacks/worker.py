"""
Worker Stack - Scheduled Electricity Pricing Pipeline

Architecture Overview:
----------------------
1. Retry queue topology (primary queue, proxy DLQ, terminal DLQ)
2. EventBridge Scheduler role + daily schedule enqueueing a pricing request
3. Pricing worker Lambda (ECR image) consuming the primary queue, writing
   electricity_pricing in DynamoDB
4. Message-retry handler Lambda (ECR image) consuming the proxy DLQ and
   scheduling delayed re-delivery to the primary queue
5. Monthly pricing worker Lambda (zip) with its own queue, DLQ, schedule and
   electricity_pricing_monthly table
6. Invocation/duration alarms for every function, emailed through SNS

Data Flow:
----------
Scheduler (13:00 UTC) → GetPricingEventQueue → pricing worker → electricity_pricing
                               ↓ (1 failed receive)
                        GetPricingEventProxyDLQ → retry handler → (delayed) GetPricingEventQueue
                               ↓ (handler failed)
                        GetPricingEventDLQ

Scheduler (13:00 UTC) → GetMonthlyPricingEventQueue → monthly worker → electricity_pricing_monthly
"""

import pulumi

from wh_infra.alarms import AlarmTopic, LambdaAlarms
from wh_infra.config import Config, require_secret
from wh_infra.lambda_function import LambdaFunction, ecr_image_uri
from wh_infra.logging import get_logger
from wh_infra.policies import (
    LAMBDA_SERVICE,
    SCHEDULER_SERVICE,
    retry_scheduling_policy,
    sqs_producer_policy,
)
from wh_infra.queues import QueueTriggeredLambda, RetryQueues, SqsQueue
from wh_infra.schedule import QueueSchedule, SchedulerRole
from wh_infra.table import PricingTable

log = get_logger(__name__)

WORKER_COMPONENTS = [
    "RetryQueues",
    "AlarmTopic",
    "PricingTable",
    "SchedulerRole",
    "QueueSchedule",
    "LambdaFunction",
    "QueueTriggeredLambda",
    "SqsQueue",
    "LambdaAlarms",
]


def _artifact(code_path: str, image_repository: str, image_tag: str) -> dict:
    """Bootstrap file when configured, otherwise the ECR image."""
    if code_path:
        return {"code_path": code_path}
    return {"image_uri": ecr_image_uri(image_repository, image_tag)}


def provision_worker_stack(config: Config) -> dict[str, pulumi.Output]:
    """Declare the queue-driven pricing workers and return stack outputs."""
    tags = config.common_tags
    alarm_email = require_secret("alarm_email")

    log.info(
        "provisioning_stack",
        variant=config.variant,
        region=config.region,
        components=WORKER_COMPONENTS,
    )

    # =========================================================================
    # Shared: queues, alarm topic, table, scheduler role
    # =========================================================================
    queues = RetryQueues(
        "pricing",
        queue_name=config.queue_name,
        proxy_dlq_name=config.proxy_dlq_name,
        dlq_name=config.dlq_name,
        visibility_timeout_seconds=config.queue_visibility_timeout_seconds,
        dlq_retention_seconds=config.dlq_retention_seconds,
        max_receive_count=config.max_receive_count,
        tags=tags,
    )

    alarm_topic = AlarmTopic("alarms", email=alarm_email)

    table = PricingTable(
        "electricity-pricing",
        table_name=config.pricing_table_name,
        read_capacity=config.table_read_capacity,
        write_capacity=config.table_write_capacity,
        tags=tags,
    )

    scheduler_role = SchedulerRole("scheduler", tags=tags)
    scheduler_role.allow_send("scheduler-pricing-send", queues.queue, queues.dlq)

    def alarms_for(prefix: str, fn: LambdaFunction) -> LambdaAlarms:
        return LambdaAlarms(
            prefix,
            function_name=fn.function.name,
            alarm_topic=alarm_topic,
            invocations_threshold=config.invocations_alarm_threshold,
            invocations_period_seconds=config.invocations_alarm_period_seconds,
            duration_threshold_ms=config.duration_alarm_threshold_ms,
            duration_period_seconds=config.duration_alarm_period_seconds,
        )

    # =========================================================================
    # Pricing Worker
    # =========================================================================
    # retry_attempt lets the retry handler count re-deliveries
    QueueSchedule(
        "daily-pricing",
        schedule_name=config.pricing_schedule_name,
        schedule_expression=config.pricing_schedule,
        queue=queues.queue,
        dead_letter_queue=queues.dlq,
        role=scheduler_role,
        maximum_retry_attempts=2,
        maximum_event_age_in_seconds=120,
        message={"retry_attempt": 0},
    )

    worker = LambdaFunction(
        "pricing-worker",
        function_name=config.worker_function_name,
        **_artifact(
            config.worker_code_path,
            config.worker_image_repository,
            config.image_tag,
        ),
        timeout=config.worker_timeout_seconds,
        tags=tags,
    )
    worker.attach_policy(
        "pricing-worker-dynamodb-policy",
        description="IAM policy for Lambda to have PutItem access to DynamoDB",
        document=table.put_item_policy(),
    )
    alarms_for("Worker", worker)
    QueueTriggeredLambda(
        "pricing-worker-trigger",
        queue=queues.queue,
        lambda_function=worker,
        visibility_timeout_seconds=queues.visibility_timeout_seconds,
    )

    # =========================================================================
    # Message Retry Handler
    # =========================================================================
    # Scheduler is trusted too: the handler's schedules run with roleArn
    message_handler = LambdaFunction(
        "message-retry-handler",
        function_name=config.message_handler_function_name,
        **_artifact(
            config.message_handler_code_path,
            config.message_handler_image_repository,
            config.image_tag,
        ),
        timeout=config.worker_timeout_seconds,
        trusted_services=(LAMBDA_SERVICE, SCHEDULER_SERVICE),
        environment={
            "queueArn": queues.queue.arn,
            "roleArn": scheduler_role.role.arn,
        },
        tags=tags,
    )
    message_handler.attach_policy(
        "message-handler-sqs-policy",
        description="IAM policy for Lambda to Send SQS Messages",
        document=queues.queue.arn.apply(sqs_producer_policy),
    )
    message_handler.attach_policy(
        "message-handler-eventbridge-policy",
        description="Policy to allow Lambda to interact with EventBridge",
        document=retry_scheduling_policy(),
    )
    alarms_for("MessageHandler", message_handler)
    QueueTriggeredLambda(
        "message-handler-trigger",
        queue=queues.proxy_dlq,
        lambda_function=message_handler,
        visibility_timeout_seconds=queues.visibility_timeout_seconds,
    )

    # =========================================================================
    # Monthly Pricing Worker
    # =========================================================================
    entsoe_token = require_secret("entsoe_api_token")

    monthly_queues = SqsQueue(
        "monthly-pricing",
        queue_name=config.monthly_queue_name,
        dlq_name=config.monthly_dlq_name,
        visibility_timeout_seconds=config.monthly_queue_visibility_timeout_seconds,
        delay_seconds=config.monthly_queue_delay_seconds,
        max_receive_count=config.monthly_max_receive_count,
        dlq_retention_seconds=config.dlq_retention_seconds,
        dlq_visibility_timeout_seconds=120,
        tags=tags,
    )
    scheduler_role.allow_send(
        "scheduler-monthly-pricing-send", monthly_queues.queue, monthly_queues.dlq
    )

    QueueSchedule(
        "monthly-pricing",
        schedule_name=config.monthly_schedule_name,
        schedule_expression=config.monthly_schedule,
        queue=monthly_queues.queue,
        dead_letter_queue=monthly_queues.dlq,
        role=scheduler_role,
        maximum_retry_attempts=5,
        maximum_event_age_in_seconds=5000,
    )

    monthly_table = PricingTable(
        "monthly-electricity-pricing",
        table_name=config.monthly_pricing_table_name,
        read_capacity=config.table_read_capacity,
        write_capacity=config.table_write_capacity,
        tags=tags,
    )

    monthly_worker = LambdaFunction(
        "monthly-pricing-worker",
        function_name=config.monthly_worker_function_name,
        code_path=config.monthly_worker_code_path,
        timeout=config.worker_timeout_seconds,
        environment={"ENTSOE_TOKEN": entsoe_token},
        tags=tags,
    )
    monthly_worker.attach_policy(
        "monthly-pricing-worker-dynamodb-policy",
        description="IAM policy for Lambda to have PutItem access to DynamoDB",
        document=monthly_table.put_item_policy(),
    )
    alarms_for("PricingWorker", monthly_worker)
    QueueTriggeredLambda(
        "monthly-pricing-worker-trigger",
        queue=monthly_queues.queue,
        lambda_function=monthly_worker,
        visibility_timeout_seconds=monthly_queues.visibility_timeout_seconds,
    )

    return {
        "worker_name": worker.function.name,
        "worker_arn": worker.function.arn,
        "message_handler_name": message_handler.function.name,
        "monthly_worker_name": monthly_worker.function.name,
        "queue_url": queues.queue.url,
        "proxy_dlq_url": queues.proxy_dlq.url,
        "dlq_url": queues.dlq.url,
        "monthly_queue_url": monthly_queues.queue.url,
        "monthly_dlq_url": monthly_queues.dlq.url,
        "pricing_table_name": table.table.name,
        "monthly_pricing_table_name": monthly_table.table.name,
        "alarm_topic_arn": alarm_topic.topic.arn,
        "scheduler_role_arn": scheduler_role.role.arn,
    }
