"""
Alarm Components - CloudWatch Alarms with Email Notification

1. AlarmTopic: SNS topic with an email subscription
2. LambdaAlarms: Invocation-count and p99-duration alarms for one function

The invocation alarm catches runaway retries (the schedule fires once a day,
so more than a handful of invocations per hour means messages are bouncing
between the queues). The duration alarm catches a slow upstream pricing API.

Note: the email subscription must be confirmed from the inbox before SNS
delivers anything.
"""

import pulumi
import pulumi_aws as aws


class AlarmTopic(pulumi.ComponentResource):
    """SNS topic that forwards alarms to an email address."""

    def __init__(
        self,
        name: str,
        email: pulumi.Input[str],
        display_name: str = "Worker Lambda Alarm Topic",
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:alarms:Topic", name, None, opts)

        self.topic = aws.sns.Topic(
            f"{name}-topic",
            display_name=display_name,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.subscription = aws.sns.TopicSubscription(
            f"{name}-email-subscription",
            topic=self.topic.arn,
            protocol="email",
            endpoint=email,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.register_outputs({"topic_arn": self.topic.arn})


class LambdaAlarms(pulumi.ComponentResource):
    """Invocation and duration alarms for a Lambda function."""

    def __init__(
        self,
        name: str,
        function_name: pulumi.Input[str],
        alarm_topic: AlarmTopic,
        invocations_threshold: int = 10,
        invocations_period_seconds: int = 3600,  # 1 hour
        duration_threshold_ms: int = 5000,
        duration_period_seconds: int = 300,  # 5 minutes
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("wh:alarms:LambdaAlarms", name, None, opts)

        self.invocations_alarm = aws.cloudwatch.MetricAlarm(
            f"{name}InvocationsAlarm",
            name=f"{name}-invocation-alarm",
            alarm_description="Alarm when worker Lambda function invocations exceed the threshold",
            comparison_operator="GreaterThanThreshold",
            evaluation_periods=1,
            threshold=invocations_threshold,
            metric_name="Invocations",
            namespace="AWS/Lambda",
            statistic="Sum",
            period=invocations_period_seconds,
            dimensions={"FunctionName": function_name},
            alarm_actions=[alarm_topic.topic.arn],
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.duration_alarm = aws.cloudwatch.MetricAlarm(
            f"{name}DurationAlarm",
            name=f"{name}-duration-alarm",
            alarm_description=(
                f"Alarm when 99th percentile duration exceeds {duration_threshold_ms / 1000:g} seconds"
            ),
            comparison_operator="GreaterThanThreshold",
            evaluation_periods=1,
            threshold=duration_threshold_ms,
            metric_name="Duration",
            namespace="AWS/Lambda",
            extended_statistic="p99",
            period=duration_period_seconds,
            dimensions={"FunctionName": function_name},
            alarm_actions=[alarm_topic.topic.arn],
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.register_outputs(
            {
                "invocations_alarm_arn": self.invocations_alarm.arn,
                "duration_alarm_arn": self.duration_alarm.arn,
            }
        )
