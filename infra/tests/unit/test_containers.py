"""Tests for the container service components."""

from __future__ import annotations

import json

from wh_infra.containers import AppRunnerService, EcsEc2Service, EksService

from tests.unit.mocks import REGION, Mocks

IMAGE = "public.ecr.aws/s1w6z3w3/waterheater-calc:latest"


class TestAppRunnerService:
    """Tests for AppRunnerService."""

    def test_service(self, deploy, mocks: Mocks) -> None:
        """Test image source, sizing and health check."""
        url = deploy(lambda: AppRunnerService("calc", image=IMAGE).service_url)

        service = mocks.named("calc-service").state
        source = service["sourceConfiguration"]["imageRepository"]

        assert url == f"calc-service-id.{REGION}.awsapprunner.com"
        assert source["imageIdentifier"] == IMAGE
        assert source["imageRepositoryType"] == "ECR_PUBLIC"
        assert source["imageConfiguration"]["port"] == "8001"
        assert service["instanceConfiguration"]["cpu"] == "256"
        assert service["instanceConfiguration"]["memory"] == "512"
        assert service["healthCheckConfiguration"]["protocol"] == "TCP"
        assert service["networkConfiguration"]["ingressConfiguration"] == {
            "isPubliclyAccessible": True
        }

    def test_autoscaling(self, deploy, mocks: Mocks) -> None:
        """Test one to two instances at 200 concurrent requests each."""
        deploy(lambda: AppRunnerService("calc", image=IMAGE).service_url)

        autoscaling = mocks.named("calc-asc").state

        assert autoscaling["maxConcurrency"] == 200
        assert autoscaling["minSize"] == 1
        assert autoscaling["maxSize"] == 2

    def test_instance_role(self, deploy, mocks: Mocks) -> None:
        """Test the container may read DynamoDB."""
        deploy(lambda: AppRunnerService("calc", image=IMAGE).service_url)

        trust = json.loads(mocks.named("calc-role").state["assumeRolePolicy"])
        attachment = mocks.named("calc-dynamodb-readonly").state

        assert trust["Statement"][0]["Principal"] == {"Service": "tasks.apprunner.amazonaws.com"}
        assert attachment["policyArn"] == "arn:aws:iam::aws:policy/AmazonDynamoDBReadOnlyAccess"


class TestEcsEc2Service:
    """Tests for EcsEc2Service."""

    def test_url(self, deploy) -> None:
        """Test the service is reached through the load balancer."""
        url = deploy(lambda: EcsEc2Service("calc", image=IMAGE, region=REGION).url)

        assert url == f"http://calc-alb.{REGION}.elb.amazonaws.com"

    def test_task_definition(self, deploy, mocks: Mocks) -> None:
        """Test the bridge-mode container definition."""
        deploy(lambda: EcsEc2Service("calc", image=IMAGE, region=REGION).url)

        task = mocks.named("calc-taskdef").state
        [container] = json.loads(task["containerDefinitions"])

        assert task["networkMode"] == "bridge"
        assert task["requiresCompatibilities"] == ["EC2"]
        assert task["memory"] == "256"
        assert container["image"] == IMAGE
        assert container["portMappings"] == [
            {"containerPort": 8001, "hostPort": 8001, "protocol": "tcp"}
        ]
        assert container["logConfiguration"]["options"]["awslogs-region"] == REGION

    def test_default_vpc_network(self, deploy, mocks: Mocks) -> None:
        """Test the load balancer spans two default-VPC subnets."""
        deploy(lambda: EcsEc2Service("calc", image=IMAGE, region=REGION).url)

        alb = mocks.named("calc-alb").state
        group = mocks.named("calc-sg").state
        target_group = mocks.named("calc-tg").state

        assert alb["subnets"] == ["subnet-a", "subnet-b"]
        assert group["vpcId"] == "vpc-default"
        assert group["ingress"][0]["fromPort"] == 80
        assert group["ingress"][0]["toPort"] == 9000
        assert target_group["targetType"] == "instance"

    def test_instance_joins_cluster(self, deploy, mocks: Mocks) -> None:
        """Test the EC2 host registers itself into the cluster."""
        deploy(lambda: EcsEc2Service("calc", image=IMAGE, region=REGION).url)

        instance = mocks.named("calc-ec2-instance").state
        service = mocks.named("calc-service").state

        assert instance["ami"] == "ami-ecs-optimized"
        assert instance["instanceType"] == "t2.micro"
        assert "ECS_CLUSTER=calc-cluster" in instance["userData"]
        assert service["desiredCount"] == 1
        assert service["deploymentMinimumHealthyPercent"] == 0
        assert service["launchType"] == "EC2"


class TestEksService:
    """Tests for EksService."""

    def test_kubernetes_objects(self, deploy, mocks: Mocks) -> None:
        """Test the Deployment and its LoadBalancer Service."""
        deploy(lambda: EksService("calc", image=IMAGE).vpc.vpc.id)

        deployment = mocks.named("calc-deployment").state
        service = mocks.named("calc-service").state
        [container] = deployment["spec"]["template"]["spec"]["containers"]

        assert deployment["spec"]["replicas"] == 1
        assert container["image"] == IMAGE
        assert container["ports"] == [{"containerPort": 8001}]
        assert service["spec"]["type"] == "LoadBalancer"
        assert service["spec"]["ports"] == [{"port": 80, "targetPort": 8001}]

    def test_cluster_network(self, deploy, mocks: Mocks) -> None:
        """Test nodes run in the private subnets of a NAT-enabled VPC."""
        deploy(lambda: EksService("calc", image=IMAGE).vpc.vpc.id)

        cluster = mocks.named("calc-eks-cluster").state

        assert mocks.of_type("aws:ec2/natGateway:NatGateway")
        assert cluster["privateSubnetIds"] == ["calc-vpc-private-1-id", "calc-vpc-private-2-id"]
        assert cluster["instanceType"] == "t3.micro"
        assert cluster["desiredCapacity"] == 1
        assert cluster["endpointPublicAccess"] is True

    def test_hostname_pending(self, deploy) -> None:
        """Test the hostname is empty until the load balancer is provisioned."""
        hostname = deploy(lambda: EksService("calc", image=IMAGE).service_hostname)

        assert hostname is None
