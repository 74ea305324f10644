"""
HTTP API Component - Public Entry Point

API Gateway v2 (HTTP API) proxying every request to a single Lambda:

    ANY /           -> Lambda (AWS_PROXY, payload 2.0)
    ANY /{proxy+}   -> Lambda (AWS_PROXY, payload 2.0)

Routing inside the service (v1/v2 handlers, rate limiting) is done by the
function itself, so the gateway stays a dumb proxy.

Deployment:
-----------
The $default stage auto-deploys, and an explicit Deployment is kept so a
change of routes or integration always produces a new deployment. Its
trigger is a hash of the route and integration ids: identical graphs do not
redeploy.
"""

import hashlib

import pulumi
import pulumi_aws as aws

from wh_infra.policies import APIGATEWAY_SERVICE


class HttpApi(pulumi.ComponentResource):
    """HTTP API routing all paths to one Lambda function."""

    def __init__(
        self,
        name: str,
        api_name: str,
        lambda_function: "LambdaFunction",  # Forward reference
        tags: dict[str, str] = None,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:apigateway:HttpApi", name, None, opts)

        self.api = aws.apigatewayv2.Api(
            f"{name}-api",
            name=api_name,
            protocol_type="HTTP",
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.integration = aws.apigatewayv2.Integration(
            f"{name}-integration",
            api_id=self.api.id,
            integration_type="AWS_PROXY",
            integration_uri=lambda_function.function.invoke_arn,
            payload_format_version="2.0",
            opts=pulumi.ResourceOptions(parent=self),
        )

        target = pulumi.Output.concat("integrations/", self.integration.id)

        self.proxy_route = aws.apigatewayv2.Route(
            f"{name}-proxy-route",
            api_id=self.api.id,
            route_key="ANY /{proxy+}",
            target=target,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.root_route = aws.apigatewayv2.Route(
            f"{name}-root-route",
            api_id=self.api.id,
            route_key="ANY /",
            target=target,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.deployment = aws.apigatewayv2.Deployment(
            f"{name}-deployment",
            api_id=self.api.id,
            description="Deployment for all routes",
            triggers={
                "redeployment": pulumi.Output.all(
                    self.proxy_route.id, self.root_route.id, self.integration.id
                ).apply(lambda ids: hashlib.sha1(",".join(ids).encode()).hexdigest()),
            },
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.stage = aws.apigatewayv2.Stage(
            f"{name}-stage",
            api_id=self.api.id,
            name="$default",
            auto_deploy=True,
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # Any stage, any method/route of this API only
        self.permission = aws.lambda_.Permission(
            f"{name}-permission",
            action="lambda:InvokeFunction",
            function=lambda_function.function.name,
            principal=APIGATEWAY_SERVICE,
            source_arn=pulumi.Output.concat(self.api.execution_arn, "/*/*"),
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.api_endpoint = self.api.api_endpoint

        self.register_outputs({"api_endpoint": self.api_endpoint})
