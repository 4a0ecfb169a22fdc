"""
Workflow Domain Entities
========================
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID


@dataclass
class Workflow:
    """
    Tenant-authored trigger -> conditions -> actions rule.

    ``conditions`` and ``actions`` hold the stored descriptors as-is; the
    engine parses them on every evaluation.
    """
    id: UUID
    tenant_id: UUID
    name: str
    trigger_event: str
    is_active: bool = True
    conditions: List[Any] = field(default_factory=list)
    actions: List[Any] = field(default_factory=list)
    created_at: Optional[datetime] = None
