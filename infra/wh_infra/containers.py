"""
Container Service Components - Alternatives to the HTTP Lambda

The calculation service is also published as a container image
(public.ecr.aws/.../waterheater-calc, listening on 8001). Three hosting
options were tried, each a self-contained component:

1. AppRunnerService: Fully managed, scales 1-2 instances on concurrency
2. EcsEc2Service: ECS on a single EC2 instance behind an ALB
3. EksService: EKS cluster with a LoadBalancer Service

Cost ranking for this traffic (lowest first): Lambda < App Runner < ECS/EC2
< EKS (the EKS control plane alone is ~$73/month). All three are kept so the
variants can be compared without rewriting anything.
"""

import json

import pulumi
import pulumi_aws as aws
import pulumi_eks as eks
import pulumi_kubernetes as k8s

from wh_infra.policies import (
    AMAZON_DYNAMODB_READ_ONLY_ACCESS,
    AMAZON_EC2_CONTAINER_SERVICE_FOR_EC2_ROLE,
    AMAZON_ECR_PUBLIC_FULL_ACCESS,
    APPRUNNER_TASKS_SERVICE,
    EC2_SERVICE,
    ECS_TASKS_SERVICE,
    ELASTIC_LOAD_BALANCING_FULL_ACCESS,
    assume_role_policy,
)
from wh_infra.vpc import Vpc

ECS_OPTIMIZED_AMI = "amzn2-ami-ecs-hvm-*-x86_64-ebs"


class AppRunnerService(pulumi.ComponentResource):
    """App Runner service pulling the public ECR image."""

    def __init__(
        self,
        name: str,
        image: str,
        port: int = 8001,
        max_concurrency: int = 200,
        min_size: int = 1,
        max_size: int = 2,
        cpu: str = "256",
        memory: str = "512",
        tags: dict[str, str] = None,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:containers:AppRunnerService", name, None, opts)

        # Instance role: what the running container may call (DynamoDB reads)
        self.role = aws.iam.Role(
            f"{name}-role",
            name=f"{name}-role",
            assume_role_policy=assume_role_policy(APPRUNNER_TASKS_SERVICE),
            opts=pulumi.ResourceOptions(parent=self),
        )

        aws.iam.RolePolicyAttachment(
            f"{name}-dynamodb-readonly",
            role=self.role.name,
            policy_arn=AMAZON_DYNAMODB_READ_ONLY_ACCESS,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.autoscaling = aws.apprunner.AutoScalingConfigurationVersion(
            f"{name}-asc",
            auto_scaling_configuration_name=f"{name}-asc",
            max_concurrency=max_concurrency,
            max_size=max_size,
            min_size=min_size,
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.service = aws.apprunner.Service(
            f"{name}-service",
            service_name=f"{name}-apprunner",
            source_configuration=aws.apprunner.ServiceSourceConfigurationArgs(
                auto_deployments_enabled=False,  # Not supported for ECR_PUBLIC
                image_repository=aws.apprunner.ServiceSourceConfigurationImageRepositoryArgs(
                    image_configuration=aws.apprunner.ServiceSourceConfigurationImageRepositoryImageConfigurationArgs(
                        port=str(port),
                    ),
                    image_identifier=image,
                    image_repository_type="ECR_PUBLIC",
                ),
            ),
            auto_scaling_configuration_arn=self.autoscaling.arn,
            health_check_configuration=aws.apprunner.ServiceHealthCheckConfigurationArgs(
                healthy_threshold=1,
                interval=20,
                protocol="TCP",
                timeout=5,
                unhealthy_threshold=5,
            ),
            instance_configuration=aws.apprunner.ServiceInstanceConfigurationArgs(
                cpu=cpu,
                instance_role_arn=self.role.arn,
                memory=memory,
            ),
            network_configuration=aws.apprunner.ServiceNetworkConfigurationArgs(
                ingress_configuration=aws.apprunner.ServiceNetworkConfigurationIngressConfigurationArgs(
                    is_publicly_accessible=True,
                ),
            ),
            observability_configuration=aws.apprunner.ServiceObservabilityConfigurationArgs(
                observability_enabled=False,
            ),
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.service_url = self.service.service_url

        self.register_outputs({"service_url": self.service_url})


class EcsEc2Service(pulumi.ComponentResource):
    """ECS service on one EC2 instance in the default VPC, behind an ALB.

    Traffic path:
    -------------
    ALB :80 -> target group (instance targets) -> EC2 :8001 -> container :8001

    The container uses bridge networking with a fixed host port, so only one
    task fits on the instance; deployment_minimum_healthy_percent=0 lets ECS
    stop the old task before starting the new one.
    """

    def __init__(
        self,
        name: str,
        image: str,
        region: str,
        container_port: int = 8001,
        instance_type: str = "t2.micro",
        memory: int = 256,
        tags: dict[str, str] = None,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:containers:EcsEc2Service", name, None, opts)

        self.log_group = aws.cloudwatch.LogGroup(
            f"{name}-logs",
            name_prefix=f"{name}-logs",
            retention_in_days=14,
            skip_destroy=False,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # =====================================================================
        # Network - default VPC
        # =====================================================================
        default_vpc = aws.ec2.get_vpc(default=True)
        subnet_ids = aws.ec2.get_subnets(
            filters=[aws.ec2.GetSubnetsFilterArgs(name="vpc-id", values=[default_vpc.id])]
        ).ids

        cluster_name = f"{name}-cluster"
        self.cluster = aws.ecs.Cluster(
            f"{name}-cluster",
            name=cluster_name,
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.security_group = aws.ec2.SecurityGroup(
            f"{name}-sg",
            vpc_id=default_vpc.id,
            description="Allow HTTP to the load balancer and the container host ports",
            ingress=[
                aws.ec2.SecurityGroupIngressArgs(
                    protocol="tcp",
                    from_port=80,
                    to_port=9000,
                    cidr_blocks=["0.0.0.0/0"],
                ),
            ],
            egress=[
                aws.ec2.SecurityGroupEgressArgs(
                    protocol="tcp",
                    from_port=1,
                    to_port=65535,
                    cidr_blocks=["0.0.0.0/0"],
                ),
            ],
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # =====================================================================
        # Load Balancer
        # =====================================================================
        self.load_balancer = aws.lb.LoadBalancer(
            f"{name}-alb",
            load_balancer_type="application",
            security_groups=[self.security_group.id],
            subnets=subnet_ids[:2],
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.target_group = aws.lb.TargetGroup(
            f"{name}-tg",
            port=80,
            protocol="HTTP",
            target_type="instance",
            vpc_id=default_vpc.id,
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.listener = aws.lb.Listener(
            f"{name}-listener",
            load_balancer_arn=self.load_balancer.arn,
            port=80,
            protocol="HTTP",
            default_actions=[
                aws.lb.ListenerDefaultActionArgs(
                    type="forward",
                    target_group_arn=self.target_group.arn,
                )
            ],
            opts=pulumi.ResourceOptions(parent=self),
        )

        # =====================================================================
        # IAM - instance role (ECS agent) and task role (container)
        # =====================================================================
        self.instance_role = aws.iam.Role(
            f"{name}-instance-role",
            assume_role_policy=assume_role_policy(EC2_SERVICE),
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        for slug, policy_arn in (
            ("ecs-ec2", AMAZON_EC2_CONTAINER_SERVICE_FOR_EC2_ROLE),
            ("ecs-lb", ELASTIC_LOAD_BALANCING_FULL_ACCESS),
            ("ecs-ecr", AMAZON_ECR_PUBLIC_FULL_ACCESS),
        ):
            aws.iam.RolePolicyAttachment(
                f"{name}-{slug}-policy-attachment",
                role=self.instance_role.name,
                policy_arn=policy_arn,
                opts=pulumi.ResourceOptions(parent=self),
            )

        self.instance_profile = aws.iam.InstanceProfile(
            f"{name}-instance-profile",
            role=self.instance_role.name,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.task_role = aws.iam.Role(
            f"{name}-task-role",
            assume_role_policy=assume_role_policy(ECS_TASKS_SERVICE),
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # =====================================================================
        # Task Definition
        # =====================================================================
        container_definitions = self.log_group.name.apply(
            lambda log_group_name: json.dumps(
                [
                    {
                        "name": f"{name}-container",
                        "image": image,
                        "memory": memory,
                        "essential": True,
                        "portMappings": [
                            {
                                "containerPort": container_port,
                                "hostPort": container_port,
                                "protocol": "tcp",
                            }
                        ],
                        "logConfiguration": {
                            "logDriver": "awslogs",
                            "options": {
                                "awslogs-region": region,
                                "awslogs-group": log_group_name,
                                "awslogs-stream-prefix": "ecs-container",
                            },
                        },
                    }
                ]
            )
        )

        self.task_definition = aws.ecs.TaskDefinition(
            f"{name}-taskdef",
            family=f"{name}-taskdef",
            network_mode="bridge",
            memory=str(memory),
            requires_compatibilities=["EC2"],
            task_role_arn=self.task_role.arn,
            container_definitions=container_definitions,
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # =====================================================================
        # EC2 Host - ECS-optimized AMI registered into the cluster
        # =====================================================================
        ami = aws.ec2.get_ami(
            owners=["amazon"],
            most_recent=True,
            filters=[aws.ec2.GetAmiFilterArgs(name="name", values=[ECS_OPTIMIZED_AMI])],
        )

        self.instance = aws.ec2.Instance(
            f"{name}-ec2-instance",
            instance_type=instance_type,
            ami=ami.id,
            vpc_security_group_ids=[self.security_group.id],
            iam_instance_profile=self.instance_profile.name,
            user_data=f"#!/bin/bash\necho ECS_CLUSTER={cluster_name} >> /etc/ecs/ecs.config\n",
            tags={**(tags or {}), "Name": f"{name}-ec2-instance"},
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.service = aws.ecs.Service(
            f"{name}-service",
            cluster=self.cluster.arn,
            desired_count=1,
            deployment_minimum_healthy_percent=0,
            deployment_maximum_percent=100,
            launch_type="EC2",
            task_definition=self.task_definition.arn,
            opts=pulumi.ResourceOptions(parent=self),
        )

        aws.lb.TargetGroupAttachment(
            f"{name}-tg-attachment",
            target_group_arn=self.target_group.arn,
            target_id=self.instance.id,
            port=container_port,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.url = pulumi.Output.concat("http://", self.load_balancer.dns_name)

        self.register_outputs({"url": self.url})


class EksService(pulumi.ComponentResource):
    """EKS cluster running the service behind a Kubernetes LoadBalancer.

    Nodes live in private subnets and pull the image through the NAT gateway;
    the Service's load balancer is placed in the public subnets.
    """

    def __init__(
        self,
        name: str,
        image: str,
        container_port: int = 8001,
        instance_type: str = "t3.micro",
        node_count: int = 1,
        vpc_cidr: str = "10.0.0.0/16",
        public_subnet_cidrs: tuple[str, ...] = ("10.0.1.0/24", "10.0.2.0/24"),
        private_subnet_cidrs: tuple[str, ...] = ("10.0.10.0/24", "10.0.11.0/24"),
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:containers:EksService", name, None, opts)

        self.vpc = Vpc(
            f"{name}-vpc",
            cidr_block=vpc_cidr,
            public_subnet_cidrs=public_subnet_cidrs,
            private_subnet_cidrs=private_subnet_cidrs,
            enable_nat_gateway=True,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.cluster = eks.Cluster(
            f"{name}-eks-cluster",
            vpc_id=self.vpc.vpc.id,
            public_subnet_ids=self.vpc.public_subnet_ids,
            private_subnet_ids=self.vpc.private_subnet_ids,
            instance_type=instance_type,
            desired_capacity=node_count,
            min_size=node_count,
            max_size=node_count,
            node_associate_public_ip_address=False,
            endpoint_private_access=False,
            endpoint_public_access=True,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.provider = k8s.Provider(
            f"{name}-k8s-provider",
            kubeconfig=self.cluster.kubeconfig_json,
            opts=pulumi.ResourceOptions(parent=self),
        )

        app_labels = {"app": f"{name}-applabel"}
        k8s_opts = pulumi.ResourceOptions(parent=self, provider=self.provider)

        self.deployment = k8s.apps.v1.Deployment(
            f"{name}-deployment",
            spec=k8s.apps.v1.DeploymentSpecArgs(
                selector=k8s.meta.v1.LabelSelectorArgs(match_labels=app_labels),
                replicas=1,
                template=k8s.core.v1.PodTemplateSpecArgs(
                    metadata=k8s.meta.v1.ObjectMetaArgs(labels=app_labels),
                    spec=k8s.core.v1.PodSpecArgs(
                        containers=[
                            k8s.core.v1.ContainerArgs(
                                name=name,
                                image=image,
                                ports=[k8s.core.v1.ContainerPortArgs(container_port=container_port)],
                            )
                        ],
                    ),
                ),
            ),
            opts=k8s_opts,
        )

        self.service = k8s.core.v1.Service(
            f"{name}-service",
            metadata=k8s.meta.v1.ObjectMetaArgs(labels=app_labels),
            spec=k8s.core.v1.ServiceSpecArgs(
                type="LoadBalancer",
                selector=app_labels,
                ports=[k8s.core.v1.ServicePortArgs(port=80, target_port=container_port)],
            ),
            opts=k8s_opts,
        )

        # AWS load balancers publish a hostname, not an IP
        self.service_hostname = self.service.status.apply(_load_balancer_hostname)

        self.register_outputs(
            {
                "vpc_id": self.vpc.vpc.id,
                "service_hostname": self.service_hostname,
            }
        )


def _load_balancer_hostname(status) -> str | None:
    if not status or not status.load_balancer or not status.load_balancer.ingress:
        return None
    return status.load_balancer.ingress[0].hostname
