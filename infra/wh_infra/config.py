"""Centralized configuration for the waterheater-calc stacks.

This module provides a single source of truth for infrastructure configuration,
so every variant reads its knobs from the same place instead of hardcoding
them in component constructors.

Usage:
    from wh_infra.config import Config, require_secret

    # In __main__.py
    config = Config.from_pulumi()
    alarm_email = require_secret("alarm_email")

Secrets:
--------
Secrets are never stored as plain config. They are resolved in order:
1. Pulumi config secret (`pulumi config set --secret alarm_email ...`)
2. Environment variable / infra/.env (ALARM_EMAIL, ENTSOE_API_TOKEN, REDIS_URL)
"""

from dataclasses import dataclass, fields

import pulumi

from wh_infra.errors import InfraConfigError
from wh_infra.settings import get_settings

# Pulumi config key -> environment variable fallback
SECRET_ENV_NAMES = {
    "alarm_email": "ALARM_EMAIL",
    "entsoe_api_token": "ENTSOE_API_TOKEN",
    "redis_url": "REDIS_URL",
}

# Variants deploying the background pricing worker rather than the HTTP service
WORKER_VARIANTS = ("worker", "scheduled-lambda")


@dataclass(frozen=True)
class Config:
    """Infrastructure configuration - single source of truth.

    All configurable values should be defined here, not scattered
    across components or hardcoded in the stack modules.
    """

    # Project identification
    project_name: str = "waterheater-calc"
    # Empty: derived from the variant (see common_tags)
    service_tag: str = ""

    # Which deployment program to run (see wh_infra.stacks.VARIANTS)
    variant: str = "worker"

    region: str = "eu-north-1"

    # Retry queue topology (worker variant)
    queue_name: str = "GetPricingEventQueue"
    proxy_dlq_name: str = "GetPricingEventProxyDLQ"
    dlq_name: str = "GetPricingEventDLQ"
    queue_visibility_timeout_seconds: int = 120
    dlq_retention_seconds: int = 1209600  # 14 days
    max_receive_count: int = 1

    # Schedules
    pricing_schedule_name: str = "GetElectricityPricingSchedule"
    pricing_schedule: str = "cron(0 13 * * ? *)"
    monthly_schedule_name: str = "GetMonthlyElectricityPricingSchedule"
    monthly_schedule: str = "cron(0 13 * * ? *)"
    scheduled_lambda_schedule: str = "cron(0 18 * * ? *)"

    # Monthly pricing queue
    monthly_queue_name: str = "GetMonthlyPricingEventQueue"
    monthly_dlq_name: str = "GetMonthlyPricingEventDLQ"
    monthly_queue_visibility_timeout_seconds: int = 600
    monthly_queue_delay_seconds: int = 60
    monthly_max_receive_count: int = 5

    # Lambda artifacts
    worker_function_name: str = "wh-electricity-pricing-worker"
    worker_image_repository: str = "waterheater-calc-worker"
    # Set to ship a cargo-lambda bootstrap instead of the ECR image
    worker_code_path: str = ""
    message_handler_function_name: str = "wh-message-retry-handler"
    message_handler_image_repository: str = "waterheater-calc-msg-handler"
    message_handler_code_path: str = ""
    image_tag: str = "latest"
    monthly_worker_function_name: str = "wh-electricity-monthly-pricing-worker"
    monthly_worker_code_path: str = "../pricing-worker/lambda-handler.zip"
    scheduled_worker_code_path: str = "../target/lambda/waterheater-calc-worker/bootstrap"
    service_function_name: str = "waterheater-calc-lambda"
    service_code_path: str = "../target/lambda/waterheater-calc/bootstrap"
    worker_timeout_seconds: int = 60
    service_timeout_seconds: int = 30

    # DynamoDB
    pricing_table_name: str = "electricity_pricing"
    monthly_pricing_table_name: str = "electricity_pricing_monthly"
    table_read_capacity: int = 1
    table_write_capacity: int = 1

    # Alarms
    invocations_alarm_threshold: int = 10
    invocations_alarm_period_seconds: int = 3600  # 1 hour
    duration_alarm_threshold_ms: int = 5000
    duration_alarm_period_seconds: int = 300  # 5 minutes

    # Container services
    container_image: str = "public.ecr.aws/s1w6z3w3/waterheater-calc:latest"
    container_port: int = 8001
    ecs_instance_type: str = "t2.micro"
    eks_instance_type: str = "t3.micro"

    # Network configuration
    vpc_cidr: str = "10.0.0.0/16"
    public_subnet_cidrs: tuple[str, ...] = ("10.0.1.0/24", "10.0.2.0/24")
    private_subnet_cidrs: tuple[str, ...] = ("10.0.10.0/24", "10.0.11.0/24")

    @classmethod
    def from_pulumi(cls) -> "Config":
        """Load config from Pulumi config with defaults.

        Every string/int field can be overridden via `pulumi config set`.
        Example: pulumi config set waterheater-calc:variant http-lambda
        """
        pulumi_config = pulumi.Config()
        region = pulumi.Config("aws").get("region")

        overrides = {}
        for f in fields(cls):
            if f.type in (int, "int"):
                value = pulumi_config.get_int(f.name)
            elif f.type in (str, "str"):
                value = pulumi_config.get(f.name)
            else:
                continue
            if value is not None:
                overrides[f.name] = value

        if region and "region" not in overrides:
            overrides["region"] = region

        return cls(**overrides)

    @property
    def common_tags(self) -> dict[str, str]:
        """Tags shared by every resource of the service."""
        if self.service_tag:
            return {"Service": self.service_tag}
        role = "worker" if self.variant in WORKER_VARIANTS else "service"
        return {"Service": f"{self.project_name}-{role}"}

    def get_tags(self, name: str) -> dict[str, str]:
        """Generate standard tags for a resource.

        Args:
            name: Resource name

        Returns:
            Dict of tags including Service and Name
        """
        return {**self.common_tags, "Name": name}


def require_secret(key: str) -> pulumi.Output[str]:
    """Resolve a named secret from Pulumi config or the environment.

    Args:
        key: Pulumi config key (one of SECRET_ENV_NAMES).

    Returns:
        The secret value wrapped as a Pulumi secret output.

    Raises:
        InfraConfigError: If the secret is configured nowhere.
    """
    env_name = SECRET_ENV_NAMES[key]

    from_config = pulumi.Config().get_secret(key)
    if from_config is not None:
        return from_config

    value = getattr(get_settings(), key)
    if value is None or not value.get_secret_value():
        raise InfraConfigError.missing_secret(key, env_name)
    return pulumi.Output.secret(value.get_secret_value())
