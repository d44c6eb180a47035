"""Collect this agent's identity from its environment.

Kubernetes injects NODE_IP, POD_IP, POD_NAME and NAMESPACE through the
downward API; all four must be present.
"""

import os
import time

from netcheck.shared.errors import ValidationError
from netcheck.shared.models import AgentDescriptor

REQUIRED_VARS = ("NODE_IP", "POD_IP", "POD_NAME", "NAMESPACE")


def collect_descriptor(environ: dict[str, str] | None = None) -> AgentDescriptor:
    """Build an AgentDescriptor from environment variables.

    Raises:
        ValidationError: If any required variable is missing or empty.
    """
    env = os.environ if environ is None else environ
    missing = [var for var in REQUIRED_VARS if not env.get(var)]
    if missing:
        raise ValidationError(f"Missing required environment variables: {', '.join(missing)}")

    return AgentDescriptor(
        agent_name=env["POD_NAME"],
        node_address=env["NODE_IP"],
        agent_address=env["POD_IP"],
        namespace=env["NAMESPACE"],
        observed_at=time.time(),
    )
