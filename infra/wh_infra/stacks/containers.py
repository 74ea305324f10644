"""
Container Stacks - App Runner, ECS on EC2 and EKS

Each variant hosts the public waterheater-calc image; see
wh_infra.containers for the resources behind each one.
"""

import pulumi

from wh_infra.config import Config
from wh_infra.containers import AppRunnerService, EcsEc2Service, EksService
from wh_infra.logging import get_logger

log = get_logger(__name__)


def provision_app_runner_stack(config: Config) -> dict[str, pulumi.Output]:
    log.info("provisioning_stack", variant=config.variant, components=["AppRunnerService"])

    service = AppRunnerService(
        "waterheater-calc",
        image=config.container_image,
        port=config.container_port,
        tags=config.common_tags,
    )
    return {"service_url": service.service_url}


def provision_ecs_stack(config: Config) -> dict[str, pulumi.Output]:
    log.info("provisioning_stack", variant=config.variant, components=["EcsEc2Service"])

    service = EcsEc2Service(
        "waterheater-calc",
        image=config.container_image,
        region=config.region,
        container_port=config.container_port,
        instance_type=config.ecs_instance_type,
        tags=config.common_tags,
    )
    return {
        "url": service.url,
        "cluster_name": service.cluster.name,
    }


def provision_eks_stack(config: Config) -> dict[str, pulumi.Output]:
    log.info("provisioning_stack", variant=config.variant, components=["EksService"])

    service = EksService(
        "waterheater-calc",
        image=config.container_image,
        container_port=config.container_port,
        instance_type=config.eks_instance_type,
        vpc_cidr=config.vpc_cidr,
        public_subnet_cidrs=config.public_subnet_cidrs,
        private_subnet_cidrs=config.private_subnet_cidrs,
    )
    return {
        "kubeconfig": pulumi.Output.secret(service.cluster.kubeconfig),
        "deployment_name": service.deployment.metadata["name"],
        "vpc_id": service.vpc.vpc.id,
        "service_name": service.service.metadata["name"],
        "service_hostname": service.service_hostname,
    }
