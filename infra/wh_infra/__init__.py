from .alarms import AlarmTopic, LambdaAlarms
from .config import Config, require_secret
from .containers import AppRunnerService, EcsEc2Service, EksService
from .errors import ErrorCode, InfraConfigError
from .http_api import HttpApi
from .lambda_function import LambdaFunction, ScheduledLambda
from .queues import QueueTriggeredLambda, RetryQueues, SqsQueue
from .schedule import QueueSchedule, SchedulerRole
from .table import PricingTable
from .vpc import Vpc

__all__ = [
    "AlarmTopic",
    "AppRunnerService",
    "Config",
    "EcsEc2Service",
    "EksService",
    "ErrorCode",
    "HttpApi",
    "InfraConfigError",
    "LambdaAlarms",
    "LambdaFunction",
    "PricingTable",
    "QueueSchedule",
    "QueueTriggeredLambda",
    "RetryQueues",
    "ScheduledLambda",
    "SchedulerRole",
    "SqsQueue",
    "Vpc",
    "require_secret",
]
