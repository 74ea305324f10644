"""
Lambda Function Components - Serverless Compute

This module provides two components for Lambda-based compute:

1. LambdaFunction: Lambda with its own execution role
2. ScheduledLambda: EventBridge-rule-triggered Lambda (cron/rate)

Artifacts:
----------
The handlers are built outside this repository and referenced either by
path or by container image:

- Bootstrap file (cargo-lambda output): shipped as the only file of the
  archive under the name "bootstrap", runtime provided.al2023
- Zip archive: uploaded as-is, runtime provided.al2023
- ECR image: package_type="Image", resolved with ecr_image_uri()

IAM Role Design:
----------------
Each Lambda gets its own IAM role with:
- Trust policy: Lambda service (plus extra services when the function hands
  its own role to EventBridge Scheduler)
- Managed policies: AWSLambdaExecute by default (logs + S3 read)
- Additional policies via attach_policy() (SQS, DynamoDB, EventBridge)
"""

from collections.abc import Sequence
from pathlib import Path

import pulumi
import pulumi_aws as aws

from wh_infra.errors import InfraConfigError
from wh_infra.policies import (
    AWS_LAMBDA_EXECUTE,
    EVENTS_SERVICE,
    LAMBDA_SERVICE,
    assume_role_policy,
)
from wh_infra.validation import validate_function_name, validate_schedule_expression

CUSTOM_RUNTIME = "provided.al2023"


def ecr_image_uri(repository_name: str, image_tag: str = "latest") -> pulumi.Output[str]:
    """Resolve the URI of an image already pushed to ECR."""
    return aws.ecr.get_image_output(
        repository_name=repository_name,
        image_tag=image_tag,
    ).image_uri


def code_archive(code_path: str) -> pulumi.Archive:
    """Package a handler artifact for a custom-runtime Lambda."""
    if code_path.endswith(".zip") or Path(code_path).is_dir():
        return pulumi.FileArchive(code_path)
    return pulumi.AssetArchive({"bootstrap": pulumi.FileAsset(code_path)})


def _policy_slug(policy_arn: str) -> str:
    return policy_arn.rsplit("/", 1)[-1].lower()


class LambdaFunction(pulumi.ComponentResource):
    """Lambda function with its execution role."""

    def __init__(
        self,
        name: str,
        function_name: str = None,
        code_path: str = None,
        image_uri: pulumi.Input[str] = None,
        environment: dict[str, pulumi.Input[str]] = None,
        timeout: int = 60,
        memory_size: int = None,
        trusted_services: Sequence[str] = (LAMBDA_SERVICE,),
        managed_policy_arns: Sequence[str] = (AWS_LAMBDA_EXECUTE,),
        role_name: str = None,
        subnet_ids: list[pulumi.Input[str]] = None,
        security_group_ids: list[pulumi.Input[str]] = None,
        tags: dict[str, str] = None,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:lambda:Function", name, None, opts)

        if (code_path is None) == (image_uri is None):
            raise InfraConfigError.invalid_artifact(name)
        if function_name is not None:
            validate_function_name(function_name)

        self.timeout = timeout
        self._tags = tags

        # =====================================================================
        # IAM Role - Lambda execution permissions
        # =====================================================================
        self.role = aws.iam.Role(
            f"{name}-role",
            name=role_name,
            assume_role_policy=assume_role_policy(*trusted_services),
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.managed_policy_attachments = [
            aws.iam.RolePolicyAttachment(
                f"{name}-{_policy_slug(policy_arn)}",
                role=self.role.name,
                policy_arn=policy_arn,
                opts=pulumi.ResourceOptions(parent=self),
            )
            for policy_arn in managed_policy_arns
        ]

        # =====================================================================
        # Lambda Function - The actual compute resource
        # =====================================================================
        if image_uri is not None:
            artifact = {"package_type": "Image", "image_uri": image_uri}
        else:
            artifact = {
                "code": code_archive(code_path),
                "handler": "bootstrap",
                "runtime": CUSTOM_RUNTIME,
            }

        vpc_config = None
        if subnet_ids:
            vpc_config = aws.lambda_.FunctionVpcConfigArgs(
                subnet_ids=subnet_ids,
                security_group_ids=security_group_ids or [],
            )

        self.function = aws.lambda_.Function(
            f"{name}-fn",
            name=function_name,
            role=self.role.arn,
            timeout=timeout,
            memory_size=memory_size,
            vpc_config=vpc_config,
            environment=aws.lambda_.FunctionEnvironmentArgs(variables=environment)
            if environment
            else None,
            tags=tags,
            opts=pulumi.ResourceOptions(
                parent=self, depends_on=self.managed_policy_attachments
            ),
            **artifact,
        )

        self.register_outputs(
            {
                "function_name": self.function.name,
                "function_arn": self.function.arn,
                "role_arn": self.role.arn,
            }
        )

    def attach_policy(
        self,
        name: str,
        description: str,
        document: pulumi.Input[str],
        tags: dict[str, str] = None,
    ) -> aws.iam.RolePolicyAttachment:
        """Create a customer-managed policy and attach it to the role."""
        policy = aws.iam.Policy(
            name,
            description=description,
            policy=document,
            tags=tags if tags is not None else self._tags,
            opts=pulumi.ResourceOptions(parent=self),
        )
        return aws.iam.RolePolicyAttachment(
            f"{name}-attachment",
            role=self.role.name,
            policy_arn=policy.arn,
            opts=pulumi.ResourceOptions(parent=self),
        )


class ScheduledLambda(pulumi.ComponentResource):
    """EventBridge rule that triggers a Lambda on a schedule.

    Schedule Expressions:
    ---------------------
    Rate: "rate(1 minute)", "rate(5 minutes)", "rate(1 hour)", "rate(1 day)"
    Cron: "cron(0 18 * * ? *)" = 18:00 UTC daily

    The queue-driven worker uses EventBridge Scheduler instead (see
    wh_infra.schedule), which supports retries and a dead-letter queue.
    """

    def __init__(
        self,
        name: str,
        lambda_function: LambdaFunction,
        schedule_expression: str,  # e.g., "cron(0 18 * * ? *)"
        description: str = None,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:lambda:ScheduledLambda", name, None, opts)

        validate_schedule_expression(schedule_expression, allow_at=False)

        self.rule = aws.cloudwatch.EventRule(
            f"{name}-rule",
            schedule_expression=schedule_expression,
            description=description,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.target = aws.cloudwatch.EventTarget(
            f"{name}-target",
            rule=self.rule.name,
            arn=lambda_function.function.arn,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # Without this, EventBridge can't call the Lambda (resource-based policy)
        self.permission = aws.lambda_.Permission(
            f"{name}-permission",
            action="lambda:InvokeFunction",
            function=lambda_function.function.name,
            principal=EVENTS_SERVICE,
            source_arn=self.rule.arn,  # Only this specific rule can invoke
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.register_outputs({"rule_arn": self.rule.arn})
