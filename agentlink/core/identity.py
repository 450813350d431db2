"""Connection identity resolution and naming checks."""
from __future__ import annotations

from typing import List, Optional

from agentlink.core.models import Identity, NamingWarning

DEFAULT_INSTANCE_NAME = "default"


def resolve_identity(agent_kind: str, instance_name: Optional[str] = None) -> Identity:
    """Build the routing identity, falling back to the default instance."""
    return Identity(agent_kind=agent_kind, instance_name=instance_name or DEFAULT_INSTANCE_NAME)


def validate_identity(identity: Identity) -> List[NamingWarning]:
    """Flag identity fields that are not lowercase.

    Remote routing is case-sensitive, so ``Chat`` and ``chat`` address
    different agents. The result is advisory only.
    """
    warnings: List[NamingWarning] = []
    for field_name in ("agent_kind", "instance_name"):
        value = getattr(identity, field_name)
        if value != value.lower():
            warnings.append(NamingWarning(field=field_name, received=value, expected=value.lower()))
    return warnings
