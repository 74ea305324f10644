"""Deployment variants, one provisioner per Pulumi stack flavour.

Usage:
    from wh_infra.stacks import provision

    outputs = provision(Config.from_pulumi())
"""

from collections.abc import Callable

import pulumi

from wh_infra.config import Config
from wh_infra.errors import InfraConfigError
from wh_infra.stacks.containers import (
    provision_app_runner_stack,
    provision_ecs_stack,
    provision_eks_stack,
)
from wh_infra.stacks.http_lambda import (
    provision_http_lambda_stack,
    provision_vpc_http_lambda_stack,
)
from wh_infra.stacks.scheduled_lambda import provision_scheduled_lambda_stack
from wh_infra.stacks.worker import provision_worker_stack

Provisioner = Callable[[Config], dict[str, pulumi.Output]]

VARIANTS: dict[str, Provisioner] = {
    "worker": provision_worker_stack,
    "scheduled-lambda": provision_scheduled_lambda_stack,
    "http-lambda": provision_http_lambda_stack,
    "vpc-http-lambda": provision_vpc_http_lambda_stack,
    "app-runner": provision_app_runner_stack,
    "ecs": provision_ecs_stack,
    "eks": provision_eks_stack,
}


def provision(config: Config) -> dict[str, pulumi.Output]:
    """Run the provisioner selected by `config.variant`.

    Raises:
        InfraConfigError: If the variant is not one of VARIANTS.
    """
    provisioner = VARIANTS.get(config.variant)
    if provisioner is None:
        raise InfraConfigError.unknown_variant(config.variant, sorted(VARIANTS))
    return provisioner(config)
