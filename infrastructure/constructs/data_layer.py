"""
Data layer construct: DynamoDB tables for customers and the nudge log.
"""

from aws_cdk import (
    RemovalPolicy,
    aws_dynamodb as dynamodb,
)
from constructs import Construct


class DataLayerConstruct(Construct):
    """Provision the customer store and the append-only nudge log."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
    ) -> None:
        super().__init__(scope, construct_id)

        removal_policy = RemovalPolicy.RETAIN if environment == "prod" else RemovalPolicy.DESTROY

        # Customer records, including touchpoint flags and nudge state.
        self.customers_table = dynamodb.Table(
            self,
            "Customers",
            partition_key=dynamodb.Attribute(
                name="customerId", type=dynamodb.AttributeType.STRING
            ),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            point_in_time_recovery=environment == "prod",
            removal_policy=removal_policy,
        )

        # One item per send attempt; logId = "<sentAt>#<suffix>" sorts by time.
        self.nudge_logs_table = dynamodb.Table(
            self,
            "NudgeLogs",
            partition_key=dynamodb.Attribute(
                name="customerId", type=dynamodb.AttributeType.STRING
            ),
            sort_key=dynamodb.Attribute(name="logId", type=dynamodb.AttributeType.STRING),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            point_in_time_recovery=environment == "prod",
            removal_policy=removal_policy,
        )
