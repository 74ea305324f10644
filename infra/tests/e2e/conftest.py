"""
Fixtures for E2E tests against a deployed stack.

The stack under test is whatever `pulumi stack select` points at in infra/.
Tests skip themselves when the selected variant does not export the outputs
they need.

Usage:
    pytest -m e2e infra/tests/e2e/ -v
"""

import json
import os
import subprocess
from dataclasses import dataclass

import boto3
import pytest


# ============================================================================
# Configuration
# ============================================================================

@dataclass
class StackOutputs:
    """Infrastructure configuration loaded from Pulumi outputs."""
    region: str
    values: dict[str, str]

    def require(self, key: str) -> str:
        """Get an output or skip the test when this variant lacks it."""
        if key not in self.values:
            pytest.skip(f"stack does not export '{key}'")
        return self.values[key]


def get_pulumi_outputs() -> dict[str, str]:
    """Get every output of the selected Pulumi stack."""
    cmd = ["pulumi", "stack", "output", "--json"]

    result = subprocess.run(
        cmd,
        cwd=os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
        capture_output=True,
        text=True,
        env={**os.environ, "PULUMI_CONFIG_PASSPHRASE": os.environ.get("PULUMI_CONFIG_PASSPHRASE", "")},
    )

    if result.returncode != 0:
        raise RuntimeError(f"Failed to get Pulumi outputs: {result.stderr}")

    return json.loads(result.stdout)


@pytest.fixture(scope="session")
def stack_outputs() -> StackOutputs:
    """Load infrastructure configuration from Pulumi outputs."""
    return StackOutputs(
        region=os.environ.get("AWS_REGION", "eu-north-1"),
        values=get_pulumi_outputs(),
    )


# ============================================================================
# AWS Clients
# ============================================================================

@pytest.fixture(scope="session")
def lambda_client(stack_outputs: StackOutputs):
    """Create AWS Lambda client."""
    return boto3.client("lambda", region_name=stack_outputs.region)


@pytest.fixture(scope="session")
def sqs_client(stack_outputs: StackOutputs):
    """Create AWS SQS client."""
    return boto3.client("sqs", region_name=stack_outputs.region)


@pytest.fixture(scope="session")
def cloudwatch_client(stack_outputs: StackOutputs):
    """Create AWS CloudWatch client."""
    return boto3.client("cloudwatch", region_name=stack_outputs.region)


@pytest.fixture(scope="session")
def scheduler_client(stack_outputs: StackOutputs):
    """Create AWS EventBridge Scheduler client."""
    return boto3.client("scheduler", region_name=stack_outputs.region)


@pytest.fixture(scope="session")
def logs_client(stack_outputs: StackOutputs):
    """Create AWS CloudWatch Logs client."""
    return boto3.client("logs", region_name=stack_outputs.region)
