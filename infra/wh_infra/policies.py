"""
IAM Policy Documents - Permission Graph Building Blocks

Every grant in the stacks is built from these helpers so that the JSON
shape (Version "2012-10-17", Statement list) lives in one place.

Documents are plain strings. Resource ARNs are usually Pulumi outputs, so
callers build the document inside `.apply()`:

    policy=queue.arn.apply(sqs_consumer_policy)

Least privilege:
----------------
Each canned grant names only the actions a single consumer needs:
- SQS consumer (Lambda event-source mapping): Receive/Delete/GetQueueAttributes
- SQS producer (retry handler): SendMessage/GetQueueAttributes
- Scheduler: SendMessage on its target queue and its dead-letter queue
- Pricing worker: dynamodb:PutItem on its table only
"""

import json
from collections.abc import Iterable, Sequence

POLICY_VERSION = "2012-10-17"

# AWS managed policies
AWS_LAMBDA_EXECUTE = "arn:aws:iam::aws:policy/AWSLambdaExecute"
AWS_LAMBDA_BASIC_EXECUTION_ROLE = (
    "arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole"
)
AWS_LAMBDA_VPC_ACCESS_EXECUTION_ROLE = (
    "arn:aws:iam::aws:policy/service-role/AWSLambdaVPCAccessExecutionRole"
)
AWS_LAMBDA_DYNAMODB_EXECUTION_ROLE = (
    "arn:aws:iam::aws:policy/service-role/AWSLambdaDynamoDBExecutionRole"
)
AMAZON_DYNAMODB_READ_ONLY_ACCESS = "arn:aws:iam::aws:policy/AmazonDynamoDBReadOnlyAccess"
AMAZON_EC2_CONTAINER_SERVICE_FOR_EC2_ROLE = (
    "arn:aws:iam::aws:policy/service-role/AmazonEC2ContainerServiceforEC2Role"
)
ELASTIC_LOAD_BALANCING_FULL_ACCESS = "arn:aws:iam::aws:policy/ElasticLoadBalancingFullAccess"
AMAZON_ECR_PUBLIC_FULL_ACCESS = (
    "arn:aws:iam::aws:policy/AmazonElasticContainerRegistryPublicFullAccess"
)

# Service principals
LAMBDA_SERVICE = "lambda.amazonaws.com"
EVENTS_SERVICE = "events.amazonaws.com"
SCHEDULER_SERVICE = "scheduler.amazonaws.com"
SQS_SERVICE = "sqs.amazonaws.com"
APIGATEWAY_SERVICE = "apigateway.amazonaws.com"
EC2_SERVICE = "ec2.amazonaws.com"
ECS_TASKS_SERVICE = "ecs-tasks.amazonaws.com"
APPRUNNER_TASKS_SERVICE = "tasks.apprunner.amazonaws.com"

SQS_CONSUMER_ACTIONS = ["sqs:ReceiveMessage", "sqs:DeleteMessage", "sqs:GetQueueAttributes"]
SQS_PRODUCER_ACTIONS = ["sqs:SendMessage", "sqs:GetQueueAttributes"]
RETRY_SCHEDULING_ACTIONS = [
    "events:PutTargets",
    "events:PutRule",
    "events:DescribeRule",
    "scheduler:CreateSchedule",
    "iam:PassRole",
]


def allow(actions: str | Sequence[str], resources: str | Sequence[str]) -> dict:
    """Build a single Allow statement."""
    return {
        "Effect": "Allow",
        "Action": actions if isinstance(actions, str) else list(actions),
        "Resource": resources if isinstance(resources, str) else list(resources),
    }


def policy_document(*statements: dict) -> str:
    """Serialize statements into an IAM policy document."""
    return json.dumps({"Version": POLICY_VERSION, "Statement": list(statements)})


def assume_role_policy(*services: str) -> str:
    """Trust policy letting the given AWS services assume a role."""
    return policy_document(
        *(
            {
                "Effect": "Allow",
                "Principal": {"Service": service},
                "Action": "sts:AssumeRole",
            }
            for service in services
        )
    )


def sqs_consumer_policy(queue_arn: str) -> str:
    return policy_document(allow(SQS_CONSUMER_ACTIONS, queue_arn))


def sqs_producer_policy(queue_arn: str) -> str:
    return policy_document(allow(SQS_PRODUCER_ACTIONS, queue_arn))


def sqs_send_policy(queue_arns: Sequence[str]) -> str:
    """SendMessage on one or more queues (scheduler target + DLQ)."""
    resources = queue_arns[0] if len(queue_arns) == 1 else list(queue_arns)
    return policy_document(allow("sqs:SendMessage", resources))


def dynamodb_put_item_policy(table_arn: str) -> str:
    return policy_document(allow(["dynamodb:PutItem"], [table_arn]))


def retry_scheduling_policy() -> str:
    """Lets the retry handler create delayed re-delivery schedules.

    The handler creates schedules whose names are only known at runtime,
    so the resource cannot be narrowed at provisioning time.
    """
    return policy_document(allow(RETRY_SCHEDULING_ACTIONS, "*"))


def redrive_policy(dead_letter_target_arn: str, max_receive_count: int) -> str:
    """SQS redrive policy: move to the DLQ after N receives."""
    return json.dumps(
        {
            "deadLetterTargetArn": dead_letter_target_arn,
            "maxReceiveCount": max_receive_count,
        }
    )


def redrive_allow_policy(source_queue_arns: Iterable[str]) -> str:
    """Only the listed queues may use this queue as their DLQ."""
    return json.dumps(
        {
            "redrivePermission": "byQueue",
            "sourceQueueArns": list(source_queue_arns),
        }
    )


def statement_resources(document: str) -> list[str]:
    """Flatten every Resource referenced by a policy document."""
    parsed = json.loads(document)
    statements = parsed["Statement"]
    if isinstance(statements, dict):
        statements = [statements]

    resources: list[str] = []
    for statement in statements:
        resource = statement.get("Resource", [])
        resources.extend([resource] if isinstance(resource, str) else resource)
    return resources
