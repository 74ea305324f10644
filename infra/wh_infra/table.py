"""
DynamoDB Component - Electricity Pricing Table

Items are keyed by country (hash) and date (range), one item per country
per day (or per month for the monthly table). The worker only ever writes
whole items, so the grant is PutItem alone.

Provisioned at 1 RCU / 1 WCU: one write per country per schedule run.
"""

import pulumi
import pulumi_aws as aws

from wh_infra.policies import dynamodb_put_item_policy
from wh_infra.validation import validate_table_name


class PricingTable(pulumi.ComponentResource):
    """DynamoDB table of electricity prices keyed by country and date."""

    def __init__(
        self,
        name: str,
        table_name: str,
        read_capacity: int = 1,
        write_capacity: int = 1,
        tags: dict[str, str] = None,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:dynamodb:PricingTable", name, None, opts)

        validate_table_name(table_name)

        self.table = aws.dynamodb.Table(
            f"{name}-table",
            name=table_name,
            attributes=[
                aws.dynamodb.TableAttributeArgs(name="country", type="S"),
                aws.dynamodb.TableAttributeArgs(name="date", type="S"),
            ],
            hash_key="country",
            range_key="date",
            billing_mode="PROVISIONED",
            read_capacity=read_capacity,
            write_capacity=write_capacity,
            tags=tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.register_outputs(
            {
                "table_name": self.table.name,
                "table_arn": self.table.arn,
            }
        )

    def put_item_policy(self) -> pulumi.Output[str]:
        return self.table.arn.apply(dynamodb_put_item_policy)
