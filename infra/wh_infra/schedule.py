"""
Schedule Components - EventBridge Scheduler -> SQS

1. SchedulerRole: IAM role EventBridge (Scheduler) assumes to deliver messages
2. QueueSchedule: Recurring schedule that enqueues a work message

Why Scheduler instead of an EventBridge rule?
---------------------------------------------
The pricing request must survive a failed delivery. Scheduler targets take a
retry policy and a dead-letter queue, so a delivery that keeps failing ends up
in the terminal DLQ instead of disappearing. The scheduler role therefore
needs sqs:SendMessage on both the target queue and that DLQ.

The retry handler also passes this role to the schedules it creates at
runtime (delayed re-delivery), which is why its ARN is exported to the
handler's environment.
"""

import json

import pulumi
import pulumi_aws as aws

from wh_infra.policies import (
    EVENTS_SERVICE,
    SCHEDULER_SERVICE,
    assume_role_policy,
    sqs_send_policy,
)
from wh_infra.validation import validate_schedule_expression


class SchedulerRole(pulumi.ComponentResource):
    """Role assumable by EventBridge and EventBridge Scheduler."""

    def __init__(
        self,
        name: str,
        tags: dict[str, str] = None,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:scheduler:Role", name, None, opts)

        self.role = aws.iam.Role(
            f"{name}-role",
            assume_role_policy=assume_role_policy(EVENTS_SERVICE, SCHEDULER_SERVICE),
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.register_outputs({"role_arn": self.role.arn})

    def allow_send(self, name: str, *queues: aws.sqs.Queue) -> aws.iam.RolePolicy:
        """Grant sqs:SendMessage on the given queues."""
        return aws.iam.RolePolicy(
            name,
            role=self.role.id,
            policy=pulumi.Output.all(*[queue.arn for queue in queues]).apply(sqs_send_policy),
            opts=pulumi.ResourceOptions(parent=self),
        )


class QueueSchedule(pulumi.ComponentResource):
    """Recurring EventBridge Scheduler schedule targeting an SQS queue."""

    def __init__(
        self,
        name: str,
        schedule_name: str,
        schedule_expression: str,
        queue: aws.sqs.Queue,
        dead_letter_queue: aws.sqs.Queue,
        role: SchedulerRole,
        maximum_retry_attempts: int = 2,
        maximum_event_age_in_seconds: int = 120,
        message: dict = None,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:scheduler:QueueSchedule", name, None, opts)

        validate_schedule_expression(schedule_expression)

        self.schedule = aws.scheduler.Schedule(
            f"{name}-schedule",
            name=schedule_name,
            group_name="default",
            flexible_time_window=aws.scheduler.ScheduleFlexibleTimeWindowArgs(mode="OFF"),
            schedule_expression=schedule_expression,
            target=aws.scheduler.ScheduleTargetArgs(
                arn=queue.arn,
                role_arn=role.role.arn,
                retry_policy=aws.scheduler.ScheduleTargetRetryPolicyArgs(
                    maximum_retry_attempts=maximum_retry_attempts,
                    maximum_event_age_in_seconds=maximum_event_age_in_seconds,
                ),
                dead_letter_config=aws.scheduler.ScheduleTargetDeadLetterConfigArgs(
                    arn=dead_letter_queue.arn,
                ),
                input=json.dumps(message) if message is not None else None,
            ),
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.register_outputs({"schedule_arn": self.schedule.arn})
