"""
Main CDK Stack for the touchpoint nudge engine.
"""

from aws_cdk import (
    Stack,
    Tags,
    CfnOutput,
    aws_iam as iam,
)
from constructs import Construct

from infrastructure.constructs.data_layer import DataLayerConstruct
from infrastructure.constructs.api_layer import ApiLayerConstruct
from infrastructure.constructs.scheduler import SchedulerConstruct
from infrastructure.config.settings import Settings


class NudgeEngineStack(Stack):
    """Main stack wiring all constructs together."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Global tags for cost/accounting.
        Tags.of(self).add("Project", "touchpoint-nudge-engine")
        Tags.of(self).add("Environment", settings.environment)
        Tags.of(self).add("CostCenter", "customer-success")
        Tags.of(self).add("ManagedBy", "cdk")

        # 1) Data layer.
        data_construct = DataLayerConstruct(
            self,
            "DataLayer",
            environment=settings.environment,
        )

        # The WhatsApp API key is injected out of band (console or CI secret).
        lambda_environment = {
            "CUSTOMERS_TABLE": data_construct.customers_table.table_name,
            "NUDGE_LOGS_TABLE": data_construct.nudge_logs_table.table_name,
            "NUDGE_DELIVERY_MODE": settings.delivery_mode,
            "EMAIL_FROM": settings.email_from,
            "SES_REGION": settings.aws_region,
            "WHATSAPP_API_URL": settings.whatsapp_api_url,
            "NUDGE_MAX_WORKERS": str(settings.max_workers),
        }

        # 2) API layer (single Lambda).
        api_construct = ApiLayerConstruct(
            self,
            "ApiLayer",
            environment=settings.environment,
            lambda_environment=lambda_environment,
            lambda_memory_mb=settings.lambda_memory_mb,
            lambda_timeout_seconds=settings.lambda_timeout_seconds,
        )

        # 3) Daily schedule for the automatic pass.
        scheduler_construct = SchedulerConstruct(
            self,
            "Scheduler",
            environment=settings.environment,
            code=api_construct.bundled_code,
            layers=[api_construct.powertools_layer],
            lambda_environment=lambda_environment,
            schedule_hour=settings.schedule_hour,
            timeout_seconds=settings.auto_nudge_timeout_seconds,
        )

        # The on-demand route hands the pass to the scheduled Lambda.
        scheduler_construct.auto_nudge_lambda.grant_invoke(api_construct.main_lambda)
        api_construct.main_lambda.add_environment(
            "AUTO_NUDGE_FUNCTION_NAME", scheduler_construct.auto_nudge_lambda.function_name
        )

        # Permissions for both Lambdas.
        ses_policy = iam.PolicyStatement(
            actions=["ses:SendEmail", "ses:SendRawEmail"],
            resources=["*"],
        )
        for fn in (api_construct.main_lambda, scheduler_construct.auto_nudge_lambda):
            data_construct.customers_table.grant_read_write_data(fn)
            data_construct.nudge_logs_table.grant_read_write_data(fn)
            fn.add_to_role_policy(ses_policy)

        # Outputs to quickly find resources.
        CfnOutput(self, "ApiEndpoint", value=api_construct.api.api_endpoint)
        CfnOutput(self, "CustomersTable", value=data_construct.customers_table.table_name)
        CfnOutput(self, "NudgeLogsTable", value=data_construct.nudge_logs_table.table_name)
        CfnOutput(self, "DailyNudgeRule", value=scheduler_construct.rule.rule_name)
