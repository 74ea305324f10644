"""
HTTP Lambda Stacks - Public Calculation Service

Two variants of the same service function behind an HTTP API:

1. http-lambda: function outside any VPC, reads DynamoDB directly
2. vpc-http-lambda: function in private subnets so it can reach a Redis
   cache (rate limiting); DynamoDB is reached through a gateway endpoint,
   so no NAT gateway is needed

Data Flow:
----------
Client → HTTP API (ANY /, ANY /{proxy+}) → waterheater-calc-lambda → DynamoDB
                                                      ↓ (vpc variant)
                                                   Redis :6379
"""

import pulumi
import pulumi_aws as aws

from wh_infra.config import Config, require_secret
from wh_infra.http_api import HttpApi
from wh_infra.lambda_function import LambdaFunction
from wh_infra.logging import get_logger
from wh_infra.policies import (
    AMAZON_DYNAMODB_READ_ONLY_ACCESS,
    AWS_LAMBDA_BASIC_EXECUTION_ROLE,
    AWS_LAMBDA_VPC_ACCESS_EXECUTION_ROLE,
)
from wh_infra.vpc import Vpc

log = get_logger(__name__)

ROLE_NAME = "waterheater-calc-lambda-role"
API_NAME = "waterheater-calc-http-api"
REDIS_PORT = 6379


def provision_http_lambda_stack(config: Config) -> dict[str, pulumi.Output]:
    """Declare the service function and its HTTP API."""
    log.info(
        "provisioning_stack",
        variant=config.variant,
        components=["LambdaFunction", "HttpApi"],
    )
    tags = config.common_tags

    service = LambdaFunction(
        "waterheater-calc-lambda",
        function_name=config.service_function_name,
        code_path=config.service_code_path,
        timeout=config.service_timeout_seconds,
        managed_policy_arns=(
            AWS_LAMBDA_BASIC_EXECUTION_ROLE,
            AMAZON_DYNAMODB_READ_ONLY_ACCESS,
        ),
        role_name=ROLE_NAME,
        tags=tags,
    )

    api = HttpApi("waterheater-calc", api_name=API_NAME, lambda_function=service, tags=tags)

    return {
        "function_name": service.function.name,
        "api_endpoint": api.api_endpoint,
    }


def provision_vpc_http_lambda_stack(config: Config) -> dict[str, pulumi.Output]:
    """Declare the VPC-attached service function, its network and HTTP API."""
    log.info(
        "provisioning_stack",
        variant=config.variant,
        components=["Vpc", "SecurityGroup", "LambdaFunction", "HttpApi"],
    )
    tags = config.common_tags
    redis_endpoint = require_secret("redis_url")

    # =========================================================================
    # Network
    # =========================================================================
    vpc = Vpc(
        "waterheater-calc",
        cidr_block=config.vpc_cidr,
        public_subnet_cidrs=config.public_subnet_cidrs,
        private_subnet_cidrs=config.private_subnet_cidrs,
        dynamodb_endpoint_region=config.region,
    )

    # Redis lives in the same VPC; the function only needs outbound access
    lambda_sg = aws.ec2.SecurityGroup(
        "lambda-sg",
        vpc_id=vpc.vpc.id,
        description="Security group for the waterheater-calc Lambda",
        ingress=[
            aws.ec2.SecurityGroupIngressArgs(
                protocol="tcp",
                from_port=REDIS_PORT,
                to_port=REDIS_PORT,
                cidr_blocks=[config.vpc_cidr],
            ),
        ],
        egress=[
            aws.ec2.SecurityGroupEgressArgs(
                protocol="-1",
                from_port=0,
                to_port=0,
                cidr_blocks=["0.0.0.0/0"],
            ),
        ],
        tags=config.get_tags("lambda-sg"),
    )

    # =========================================================================
    # Service function
    # =========================================================================
    service = LambdaFunction(
        "waterheater-calc-lambda",
        function_name=config.service_function_name,
        code_path=config.service_code_path,
        timeout=config.service_timeout_seconds,
        managed_policy_arns=(
            AWS_LAMBDA_BASIC_EXECUTION_ROLE,
            AMAZON_DYNAMODB_READ_ONLY_ACCESS,
            AWS_LAMBDA_VPC_ACCESS_EXECUTION_ROLE,
        ),
        role_name=ROLE_NAME,
        subnet_ids=vpc.private_subnet_ids,
        security_group_ids=[lambda_sg.id],
        environment={
            "REDIS_ENDPOINT": redis_endpoint,
            "DEPLOY_ENV": "production",
        },
        tags=tags,
    )

    api = HttpApi("waterheater-calc", api_name=API_NAME, lambda_function=service, tags=tags)

    return {
        "function_name": service.function.name,
        "api_endpoint": api.api_endpoint,
        "vpc_id": vpc.vpc.id,
        "lambda_security_group_id": lambda_sg.id,
    }
