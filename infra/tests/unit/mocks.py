"""Pulumi mock engine for the unit suite.

Custom resources echo their inputs back as outputs, plus the computed
attributes the components read (ARNs, URLs, endpoints), so assertions can be
made on the resolved resource graph without touching AWS.
"""

from __future__ import annotations

from dataclasses import dataclass

import pulumi

REGION = "eu-north-1"
ACCOUNT_ID = "123456789012"
AVAILABILITY_ZONES = ["eu-north-1a", "eu-north-1b", "eu-north-1c"]

# Envelope the engine wraps secret inputs in
SECRET_SIG_KEY = "4dabf18193072939515e22adb298388d"
SECRET_SIG = "1b47061264138c4ac30d75fd1eb44270"


@dataclass
class DeclaredResource:
    """A custom resource as the mock engine saw it."""

    typ: str
    name: str
    state: dict
    # Top-level inputs that arrived as secrets
    secrets: frozenset[str] = frozenset()


def _service(typ: str) -> str:
    # "aws:sqs/queue:Queue" -> "sqs"
    return typ.split(":")[1].split("/")[0]


def _unwrap_secret(value):
    """Strip the secret envelope from a value, recursively."""
    if isinstance(value, dict):
        if value.get(SECRET_SIG_KEY) == SECRET_SIG:
            return _unwrap_secret(value["value"])
        return {key: _unwrap_secret(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_unwrap_secret(item) for item in value]
    return value


def _is_secret(value) -> bool:
    """True if the value or anything nested in it is a secret."""
    if isinstance(value, dict):
        return value.get(SECRET_SIG_KEY) == SECRET_SIG or any(map(_is_secret, value.values()))
    if isinstance(value, list):
        return any(map(_is_secret, value))
    return False


class Mocks(pulumi.runtime.Mocks):
    """Mock engine recording every declared resource."""

    def __init__(self) -> None:
        self.resources: list[DeclaredResource] = []

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        physical_name = args.inputs.get("name") or args.name
        resource_id = f"{args.name}-id"
        outputs = {**args.inputs, "name": physical_name}

        if args.typ.startswith("aws:") and "arn" not in outputs:
            outputs["arn"] = f"arn:aws:{_service(args.typ)}:{REGION}:{ACCOUNT_ID}:{physical_name}"

        if args.typ == "aws:sqs/queue:Queue":
            outputs["url"] = f"https://sqs.{REGION}.amazonaws.com/{ACCOUNT_ID}/{physical_name}"
            resource_id = outputs["url"]
        elif args.typ == "aws:lambda/function:Function":
            outputs["invokeArn"] = (
                f"arn:aws:apigateway:{REGION}:lambda:path/2015-03-31/functions/"
                f"{outputs['arn']}/invocations"
            )
        elif args.typ == "aws:apigatewayv2/api:Api":
            outputs["executionArn"] = f"arn:aws:execute-api:{REGION}:{ACCOUNT_ID}:{resource_id}"
            outputs["apiEndpoint"] = f"https://{resource_id}.execute-api.{REGION}.amazonaws.com"
        elif args.typ == "aws:apprunner/service:Service":
            outputs["serviceUrl"] = f"{resource_id}.{REGION}.awsapprunner.com"
        elif args.typ == "aws:lb/loadBalancer:LoadBalancer":
            outputs["dnsName"] = f"{args.name}.{REGION}.elb.amazonaws.com"
        elif args.typ == "aws:lambda/eventSourceMapping:EventSourceMapping":
            outputs["uuid"] = f"{args.name}-uuid"
        elif args.typ == "eks:index:Cluster":
            outputs["kubeconfig"] = {"apiVersion": "v1", "clusters": []}
            outputs["kubeconfigJson"] = '{"apiVersion": "v1", "clusters": []}'
        elif args.typ.startswith("kubernetes:"):
            # The Kubernetes provider auto-names objects without metadata.name
            outputs["metadata"] = {"name": args.name, **(args.inputs.get("metadata") or {})}

        secrets = frozenset(key for key, value in args.inputs.items() if _is_secret(value))
        self.resources.append(
            DeclaredResource(args.typ, args.name, _unwrap_secret(outputs), secrets)
        )
        return [resource_id, outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        if args.token == "aws:index/getAvailabilityZones:getAvailabilityZones":
            return {"names": AVAILABILITY_ZONES, "zoneIds": ["eun1-az1", "eun1-az2", "eun1-az3"]}
        if args.token == "aws:ecr/getImage:getImage":
            repository = args.args.get("repositoryName")
            tag = args.args.get("imageTag", "latest")
            return {
                "imageUri": f"{ACCOUNT_ID}.dkr.ecr.{REGION}.amazonaws.com/{repository}:{tag}",
            }
        if args.token == "aws:ec2/getVpc:getVpc":
            return {"id": "vpc-default", "cidrBlock": "172.31.0.0/16"}
        if args.token == "aws:ec2/getSubnets:getSubnets":
            return {"ids": ["subnet-a", "subnet-b", "subnet-c"]}
        if args.token == "aws:ec2/getAmi:getAmi":
            return {"id": "ami-ecs-optimized"}
        return {}

    def of_type(self, typ: str) -> list[DeclaredResource]:
        return [resource for resource in self.resources if resource.typ == typ]

    def named(self, name: str) -> DeclaredResource:
        matches = [resource for resource in self.resources if resource.name == name]
        assert matches, f"no resource named {name!r} was declared"
        return matches[0]
