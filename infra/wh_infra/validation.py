"""AWS naming and syntax constraints, checked before resources are declared.

The provider would reject these at `pulumi up` time after partially
creating the stack; checking them while building the graph fails fast.
"""

import re

from wh_infra.errors import InfraConfigError

_CRON = re.compile(r"^cron\(\S+( \S+){5}\)$")
_RATE = re.compile(r"^rate\((?P<value>\d+) (?P<unit>minute|minutes|hour|hours|day|days)\)$")
_AT = re.compile(r"^at\(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\)$")

_QUEUE_NAME = re.compile(r"^[A-Za-z0-9_-]{1,80}$")
_FIFO_QUEUE_NAME = re.compile(r"^[A-Za-z0-9_-]{1,75}\.fifo$")
_FUNCTION_NAME = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
_TABLE_NAME = re.compile(r"^[A-Za-z0-9_.-]{3,255}$")

MAX_VISIBILITY_TIMEOUT = 43200  # 12 hours
MIN_RETENTION = 60
MAX_RETENTION = 1209600  # 14 days
MAX_DELAY = 900
MAX_RECEIVE_COUNT = 1000


def validate_schedule_expression(expression: str, allow_at: bool = True) -> str:
    """Accept cron(...) with six fields, rate(n unit) or at(timestamp).

    One-time at(...) expressions are a Scheduler feature; EventBridge rules
    pass allow_at=False.
    """
    if _CRON.match(expression) or (allow_at and _AT.match(expression)):
        return expression

    rate = _RATE.match(expression)
    if rate:
        value = int(rate.group("value"))
        singular = not rate.group("unit").endswith("s")
        # AWS wants "rate(1 hour)" but "rate(2 hours)"
        if value > 0 and singular == (value == 1):
            return expression

    raise InfraConfigError.invalid_schedule(expression)


def validate_queue_name(name: str) -> str:
    if _QUEUE_NAME.match(name) or _FIFO_QUEUE_NAME.match(name):
        return name
    raise InfraConfigError.invalid_name(
        "queue", name, "1-80 characters: alphanumerics, hyphens, underscores (optional .fifo)"
    )


def validate_function_name(name: str) -> str:
    if _FUNCTION_NAME.match(name):
        return name
    raise InfraConfigError.invalid_name(
        "function", name, "1-64 characters: alphanumerics, hyphens, underscores"
    )


def validate_table_name(name: str) -> str:
    if _TABLE_NAME.match(name):
        return name
    raise InfraConfigError.invalid_name(
        "table", name, "3-255 characters: alphanumerics, hyphens, underscores, dots"
    )


def validate_queue_settings(
    *,
    visibility_timeout_seconds: int,
    message_retention_seconds: int | None = None,
    delay_seconds: int = 0,
    max_receive_count: int | None = None,
) -> None:
    """Range-check SQS attributes against the service limits."""
    if not 0 <= visibility_timeout_seconds <= MAX_VISIBILITY_TIMEOUT:
        raise InfraConfigError.invalid_queue_settings(
            f"visibility_timeout_seconds={visibility_timeout_seconds} "
            f"(allowed 0-{MAX_VISIBILITY_TIMEOUT})"
        )
    if message_retention_seconds is not None and not (
        MIN_RETENTION <= message_retention_seconds <= MAX_RETENTION
    ):
        raise InfraConfigError.invalid_queue_settings(
            f"message_retention_seconds={message_retention_seconds} "
            f"(allowed {MIN_RETENTION}-{MAX_RETENTION})"
        )
    if not 0 <= delay_seconds <= MAX_DELAY:
        raise InfraConfigError.invalid_queue_settings(
            f"delay_seconds={delay_seconds} (allowed 0-{MAX_DELAY})"
        )
    if max_receive_count is not None and not 1 <= max_receive_count <= MAX_RECEIVE_COUNT:
        raise InfraConfigError.invalid_queue_settings(
            f"max_receive_count={max_receive_count} (allowed 1-{MAX_RECEIVE_COUNT})"
        )
