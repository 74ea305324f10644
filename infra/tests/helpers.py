"""
Test helper utilities for AWS Lambda, SQS, Scheduler and CloudWatch operations.
"""

import json
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass

from rich.console import Console
from rich.table import Table
from rich import box


console = Console()


@dataclass
class QueueStats:
    """Statistics for an SQS queue."""
    name: str
    messages_available: int
    messages_in_flight: int
    messages_delayed: int

    @property
    def total(self) -> int:
        return self.messages_available + self.messages_in_flight + self.messages_delayed


@dataclass
class QueueSettings:
    """Configured attributes of an SQS queue."""
    name: str
    arn: str
    visibility_timeout: int
    retention: int
    delay: int
    redrive_policy: dict | None
    redrive_allow_policy: dict | None


# ============================================================================
# Lambda Helpers
# ============================================================================

def get_function_config(client, function_name: str) -> dict:
    """Get the deployed configuration of a Lambda function."""
    return client.get_function_configuration(FunctionName=function_name)


def get_event_source_arns(client, function_name: str) -> list[str]:
    """List the queue ARNs a Lambda function consumes."""
    response = client.list_event_source_mappings(FunctionName=function_name)
    return [m["EventSourceArn"] for m in response.get("EventSourceMappings", [])]


# ============================================================================
# SQS Helpers
# ============================================================================

def get_queue_stats(client, queue_url: str) -> QueueStats:
    """Get statistics for an SQS queue."""
    response = client.get_queue_attributes(
        QueueUrl=queue_url,
        AttributeNames=[
            "ApproximateNumberOfMessages",
            "ApproximateNumberOfMessagesNotVisible",
            "ApproximateNumberOfMessagesDelayed",
        ]
    )

    attrs = response.get("Attributes", {})
    name = queue_url.split("/")[-1]

    return QueueStats(
        name=name,
        messages_available=int(attrs.get("ApproximateNumberOfMessages", 0)),
        messages_in_flight=int(attrs.get("ApproximateNumberOfMessagesNotVisible", 0)),
        messages_delayed=int(attrs.get("ApproximateNumberOfMessagesDelayed", 0)),
    )


def get_queue_settings(client, queue_url: str) -> QueueSettings:
    """Get visibility, retention, delay and redrive settings of a queue."""
    response = client.get_queue_attributes(QueueUrl=queue_url, AttributeNames=["All"])
    attrs = response.get("Attributes", {})

    redrive = attrs.get("RedrivePolicy")
    redrive_allow = attrs.get("RedriveAllowPolicy")

    return QueueSettings(
        name=queue_url.split("/")[-1],
        arn=attrs["QueueArn"],
        visibility_timeout=int(attrs.get("VisibilityTimeout", 0)),
        retention=int(attrs.get("MessageRetentionPeriod", 0)),
        delay=int(attrs.get("DelaySeconds", 0)),
        redrive_policy=json.loads(redrive) if redrive else None,
        redrive_allow_policy=json.loads(redrive_allow) if redrive_allow else None,
    )


# ============================================================================
# CloudWatch Helpers
# ============================================================================

def get_function_alarms(client, function_name: str) -> list[dict]:
    """Get the CloudWatch alarms dimensioned on a Lambda function."""
    response = client.describe_alarms_for_metric(
        MetricName="Invocations",
        Namespace="AWS/Lambda",
        Dimensions=[{"Name": "FunctionName", "Value": function_name}],
    )
    alarms = response.get("MetricAlarms", [])

    response = client.describe_alarms_for_metric(
        MetricName="Duration",
        Namespace="AWS/Lambda",
        ExtendedStatistic="p99",
        Dimensions=[{"Name": "FunctionName", "Value": function_name}],
    )
    return alarms + response.get("MetricAlarms", [])


def get_lambda_logs(
    client,
    function_name: str,
    since_minutes: int = 60,
    limit: int = 100
) -> list[dict]:
    """
    Get recent CloudWatch logs for a Lambda function.

    Args:
        client: boto3 CloudWatch Logs client
        function_name: Lambda function name
        since_minutes: How far back to look
        limit: Maximum number of log events

    Returns:
        List of log events with timestamp and message (runtime lines skipped),
        empty when the function has never run
    """
    log_group = f"/aws/lambda/{function_name}"
    start_time = int((datetime.now(timezone.utc) - timedelta(minutes=since_minutes)).timestamp() * 1000)

    try:
        response = client.filter_log_events(
            logGroupName=log_group,
            startTime=start_time,
            limit=limit,
        )
    except client.exceptions.ResourceNotFoundException:
        return []

    events = []
    for event in response.get("events", []):
        message = event.get("message", "")
        if message.startswith(("START ", "END ", "REPORT ", "INIT_START ")):
            continue
        events.append({
            "timestamp": datetime.fromtimestamp(event["timestamp"] / 1000, timezone.utc),
            "message": message.strip(),
        })

    return events


# ============================================================================
# Scheduler Helpers
# ============================================================================

def get_schedule(client, schedule_name: str, group_name: str = "default") -> dict:
    """Get an EventBridge Scheduler schedule with its target."""
    return client.get_schedule(Name=schedule_name, GroupName=group_name)


# ============================================================================
# Display Helpers
# ============================================================================

def print_function_config(config: dict) -> None:
    """Print the deployed settings of a Lambda function."""
    table = Table(title=config["FunctionName"], box=box.ROUNDED)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Package", config.get("PackageType", "Zip"))
    table.add_row("Runtime", config.get("Runtime", "-"))
    table.add_row("Timeout", f"{config['Timeout']}s")
    table.add_row("Memory", f"{config['MemorySize']} MB")
    table.add_row("Role", config["Role"])
    for key in sorted(config.get("Environment", {}).get("Variables", {})):
        table.add_row("Env", key)

    console.print(table)


def print_queue_settings(settings: list[QueueSettings]) -> None:
    """Print queue settings and redrive targets in a table."""
    table = Table(title="SQS Queue Settings", box=box.ROUNDED)
    table.add_column("Queue", style="cyan")
    table.add_column("Visibility", justify="right")
    table.add_column("Retention", justify="right")
    table.add_column("Delay", justify="right")
    table.add_column("Redrive To")

    for s in settings:
        target = "-"
        if s.redrive_policy:
            target = (
                f"{s.redrive_policy['deadLetterTargetArn'].split(':')[-1]} "
                f"(after {s.redrive_policy['maxReceiveCount']})"
            )
        table.add_row(
            s.name,
            f"{s.visibility_timeout}s",
            f"{s.retention}s",
            f"{s.delay}s",
            target,
        )

    console.print(table)


def print_queue_stats(stats: list[QueueStats]) -> None:
    """Print queue statistics in a table."""
    table = Table(title="SQS Queue Statistics", box=box.ROUNDED)
    table.add_column("Queue", style="cyan")
    table.add_column("Available", justify="right")
    table.add_column("In Flight", justify="right")
    table.add_column("Delayed", justify="right")
    table.add_column("Total", justify="right", style="bold")

    for s in stats:
        table.add_row(
            s.name,
            str(s.messages_available),
            str(s.messages_in_flight),
            str(s.messages_delayed),
            str(s.total),
        )

    console.print(table)




def print_logs(logs: list[dict], title: str = "CloudWatch Logs") -> None:
    """Print logs in a formatted table."""
    if not logs:
        console.print(f"[dim]No logs found for {title}[/dim]")
        return

    table = Table(title=title, box=box.ROUNDED, show_lines=True)
    table.add_column("Time", style="dim", width=12)
    table.add_column("Message")

    for log in logs:
        table.add_row(log["timestamp"].strftime("%H:%M:%S"), log["message"])

    console.print(table)
