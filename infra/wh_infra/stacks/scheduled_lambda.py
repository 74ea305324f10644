"""
Scheduled Lambda Stack - Daily Calculation Worker

The smallest worker variant: one custom-runtime function, no queues. An
EventBridge rule invokes it directly at 18:00 UTC every day, after the
day-ahead prices have been published.

    EventBridge rule (18:00 UTC) → waterheater-calc worker → DynamoDB
"""

import pulumi

from wh_infra.config import Config
from wh_infra.lambda_function import LambdaFunction, ScheduledLambda
from wh_infra.logging import get_logger
from wh_infra.policies import AWS_LAMBDA_DYNAMODB_EXECUTION_ROLE, AWS_LAMBDA_EXECUTE

log = get_logger(__name__)


def provision_scheduled_lambda_stack(config: Config) -> dict[str, pulumi.Output]:
    """Declare the cron-invoked worker and return stack outputs."""
    log.info(
        "provisioning_stack",
        variant=config.variant,
        components=["LambdaFunction", "ScheduledLambda"],
    )

    worker = LambdaFunction(
        "waterheater-calc-worker",
        code_path=config.scheduled_worker_code_path,
        timeout=config.worker_timeout_seconds,
        managed_policy_arns=(AWS_LAMBDA_EXECUTE, AWS_LAMBDA_DYNAMODB_EXECUTION_ROLE),
        tags=config.common_tags,
    )

    ScheduledLambda(
        "waterheater-calc-worker-schedule",
        lambda_function=worker,
        schedule_expression=config.scheduled_lambda_schedule,
        description="Triggers waterheater-calc worker at 18:00 UTC every day.",
    )

    return {
        "worker_name": worker.function.name,
        "worker_arn": worker.function.arn,
    }
