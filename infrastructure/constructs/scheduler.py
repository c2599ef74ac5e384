"""
Scheduler: EventBridge cron rule -> Lambda running the daily nudge pass.
"""

from typing import Dict

from aws_cdk import (
    Duration,
    aws_events as events,
    aws_events_targets as targets,
    aws_lambda as _lambda,
    aws_logs as logs,
)
from constructs import Construct


class SchedulerConstruct(Construct):
    """Run the automatic nudge pass once a day."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        code: _lambda.Code,
        layers,
        lambda_environment: Dict[str, str],
        schedule_hour: int = 9,
        timeout_seconds: int = 900,
    ) -> None:
        super().__init__(scope, construct_id)

        self.auto_nudge_lambda = _lambda.Function(
            self,
            "AutoNudgeHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.auto_nudge.lambda_handler",
            code=code,
            layers=layers,
            timeout=Duration.seconds(timeout_seconds),
            memory_size=512,
            architecture=_lambda.Architecture.X86_64,
            # Only one pass at a time.
            reserved_concurrent_executions=1,
            environment={"ENVIRONMENT": environment, **lambda_environment},
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        # cron(0 9 * * ? *) by default, in UTC.
        self.rule = events.Rule(
            self,
            "DailyNudgeRule",
            schedule=events.Schedule.cron(minute="0", hour=str(schedule_hour)),
            targets=[targets.LambdaFunction(self.auto_nudge_lambda, retry_attempts=0)],
        )
