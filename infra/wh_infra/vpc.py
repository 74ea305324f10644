"""
VPC Component - Network Foundation

This module creates a VPC with two subnet tiers:

Subnet Tiers:
-------------
1. Public Subnets (10.0.1.0/24, 10.0.2.0/24)
   - Direct internet access via Internet Gateway
   - Used for: NAT Gateway, EKS load balancers
   - map_public_ip_on_launch=True for direct connectivity

2. Private Subnets (10.0.10.0/24, 10.0.11.0/24)
   - Internet via NAT Gateway when enable_nat_gateway=True (EKS nodes pull
     images), VPC-local otherwise (the HTTP Lambda only talks to Redis and
     DynamoDB)

DynamoDB Gateway Endpoint:
--------------------------
Lambdas in private subnets without NAT reach DynamoDB through a gateway
endpoint on the private route table. Gateway endpoints are free, unlike NAT
(~$32/month).

Multi-AZ Design:
----------------
- Two subnets per tier across different Availability Zones
- EKS requires subnets in at least two AZs
"""

import pulumi
import pulumi_aws as aws


class Vpc(pulumi.ComponentResource):
    """VPC with public and private subnets across two AZs."""

    def __init__(
        self,
        name: str,
        cidr_block: str = "10.0.0.0/16",
        public_subnet_cidrs: tuple[str, ...] = ("10.0.1.0/24", "10.0.2.0/24"),
        private_subnet_cidrs: tuple[str, ...] = ("10.0.10.0/24", "10.0.11.0/24"),
        enable_nat_gateway: bool = False,
        dynamodb_endpoint_region: str = None,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:network:Vpc", name, None, opts)

        # =====================================================================
        # VPC - The network container
        # =====================================================================
        self.vpc = aws.ec2.Vpc(
            f"{name}-vpc",
            cidr_block=cidr_block,
            enable_dns_hostnames=True,
            enable_dns_support=True,
            tags={"Name": f"{name}-vpc"},
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.igw = aws.ec2.InternetGateway(
            f"{name}-igw",
            vpc_id=self.vpc.id,
            tags={"Name": f"{name}-igw"},
            opts=pulumi.ResourceOptions(parent=self),
        )

        # First AZs of the region (e.g., eu-north-1a, eu-north-1b)
        azs = aws.get_availability_zones(state="available").names

        # =====================================================================
        # Subnets
        # =====================================================================
        self.public_subnets = [
            aws.ec2.Subnet(
                f"{name}-public-{i + 1}",
                vpc_id=self.vpc.id,
                cidr_block=cidr,
                availability_zone=azs[i % len(azs)],
                map_public_ip_on_launch=True,
                tags={"Name": f"{name}-public-{i + 1}"},
                opts=pulumi.ResourceOptions(parent=self),
            )
            for i, cidr in enumerate(public_subnet_cidrs)
        ]

        self.private_subnets = [
            aws.ec2.Subnet(
                f"{name}-private-{i + 1}",
                vpc_id=self.vpc.id,
                cidr_block=cidr,
                availability_zone=azs[i % len(azs)],
                tags={"Name": f"{name}-private-{i + 1}"},
                opts=pulumi.ResourceOptions(parent=self),
            )
            for i, cidr in enumerate(private_subnet_cidrs)
        ]

        # =====================================================================
        # Route Tables - Traffic routing rules
        # =====================================================================
        # Public route table: 0.0.0.0/0 → Internet Gateway
        self.public_rt = aws.ec2.RouteTable(
            f"{name}-public-rt",
            vpc_id=self.vpc.id,
            routes=[
                aws.ec2.RouteTableRouteArgs(
                    cidr_block="0.0.0.0/0",
                    gateway_id=self.igw.id,
                )
            ],
            tags={"Name": f"{name}-public-rt"},
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.nat_gateway = None
        private_routes = []
        if enable_nat_gateway:
            eip = aws.ec2.Eip(
                f"{name}-nat-eip",
                domain="vpc",
                tags={"Name": f"{name}-nat-eip"},
                opts=pulumi.ResourceOptions(parent=self),
            )
            # Single NAT in the first public subnet
            self.nat_gateway = aws.ec2.NatGateway(
                f"{name}-nat",
                allocation_id=eip.id,
                subnet_id=self.public_subnets[0].id,
                tags={"Name": f"{name}-nat"},
                opts=pulumi.ResourceOptions(parent=self, depends_on=[self.igw]),
            )
            private_routes.append(
                aws.ec2.RouteTableRouteArgs(
                    cidr_block="0.0.0.0/0",
                    nat_gateway_id=self.nat_gateway.id,
                )
            )

        # Private route table: NAT route if enabled, otherwise VPC-local only
        self.private_rt = aws.ec2.RouteTable(
            f"{name}-private-rt",
            vpc_id=self.vpc.id,
            routes=private_routes,
            tags={"Name": f"{name}-private-rt"},
            opts=pulumi.ResourceOptions(parent=self),
        )

        for i, subnet in enumerate(self.public_subnets):
            aws.ec2.RouteTableAssociation(
                f"{name}-public-{i + 1}-rta",
                subnet_id=subnet.id,
                route_table_id=self.public_rt.id,
                opts=pulumi.ResourceOptions(parent=self),
            )
        for i, subnet in enumerate(self.private_subnets):
            aws.ec2.RouteTableAssociation(
                f"{name}-private-{i + 1}-rta",
                subnet_id=subnet.id,
                route_table_id=self.private_rt.id,
                opts=pulumi.ResourceOptions(parent=self),
            )

        self.dynamodb_endpoint = None
        if dynamodb_endpoint_region:
            self.dynamodb_endpoint = aws.ec2.VpcEndpoint(
                f"{name}-dynamodb-endpoint",
                vpc_id=self.vpc.id,
                service_name=f"com.amazonaws.{dynamodb_endpoint_region}.dynamodb",
                route_table_ids=[self.private_rt.id],
                vpc_endpoint_type="Gateway",
                opts=pulumi.ResourceOptions(parent=self),
            )

        # =====================================================================
        # Outputs - Subnet ID lists for other components
        # =====================================================================
        self.public_subnet_ids = [subnet.id for subnet in self.public_subnets]
        self.private_subnet_ids = [subnet.id for subnet in self.private_subnets]

        self.register_outputs(
            {
                "vpc_id": self.vpc.id,
                "public_subnet_ids": self.public_subnet_ids,
                "private_subnet_ids": self.private_subnet_ids,
            }
        )
