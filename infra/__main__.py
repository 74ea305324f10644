"""
Waterheater-calc Infrastructure - Main Pulumi Program

This file selects one deployment variant and exports its outputs. The
variants are competing ways of hosting the same electricity-pricing /
water-heater calculation service; each Pulumi stack runs exactly one.

Variants (pulumi config set waterheater-calc:variant <name>):
-------------------------------------------------------------
- worker:           queue-driven pricing workers with retry handler (default)
- scheduled-lambda: cron-invoked calculation worker
- http-lambda:      service function behind an HTTP API
- vpc-http-lambda:  same, inside a VPC next to a Redis cache
- app-runner:       container image on App Runner
- ecs:              container image on ECS (EC2 launch type) behind an ALB
- eks:              container image on EKS behind a LoadBalancer Service

Secrets (Pulumi config secret, or environment / infra/.env):
-------------------------------------------------------------
- alarm_email / ALARM_EMAIL:           worker alarm notifications
- entsoe_api_token / ENTSOE_API_TOKEN: monthly pricing worker
- redis_url / REDIS_URL:               vpc-http-lambda cache endpoint
"""

import pulumi

from wh_infra.config import Config
from wh_infra.stacks import provision

config = Config.from_pulumi()

outputs = provision(config)

# =============================================================================
# Exports
# =============================================================================
# Consumed by `pulumi stack output` in tests/e2e
for key, value in outputs.items():
    pulumi.export(key, value)
