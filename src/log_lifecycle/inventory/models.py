"""Snapshots of log groups as read from the inventory."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from log_lifecycle.policy.retention import Retention, from_api, to_api


@dataclass(frozen=True)
class ResourceDescriptor:
    """Immutable snapshot of one log group."""

    name: str
    retention: Retention
    region: str = ""
    arn: Optional[str] = None
    stored_bytes: int = 0
    created_at: Optional[datetime] = None
    elapsed_days: int = 0
    log_group_class: str = "STANDARD"
    deletion_protected: bool = False
    tags: Mapping[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def resource_id(self) -> str:
        """Identity used in reports: ``region:name`` when the region is known."""
        return f"{self.region}:{self.name}" if self.region else self.name

    @property
    def source(self) -> str:
        """``account/region`` taken from the ARN; empty when the ARN is unknown."""
        parts = (self.arn or "").split(":", 5)
        if len(parts) < 6 or parts[0] != "arn" or not parts[3] or not parts[4]:
            return ""
        return f"{parts[4]}/{parts[3]}"

    @classmethod
    def from_log_group(
        cls,
        log_group: Dict[str, Any],
        region: str,
        now: Optional[datetime] = None
    ) -> "ResourceDescriptor":
        """Build a snapshot from a ``describe_log_groups`` item.

        Args:
            log_group: One element of the ``logGroups`` list
            region: Region the log group was listed in
            now: Reference time for ``elapsed_days``
        """
        now = now or datetime.now(timezone.utc)
        created_at = None
        elapsed = 0
        creation_ms = log_group.get('creationTime')
        if creation_ms is not None:
            created_at = datetime.fromtimestamp(creation_ms / 1000, tz=timezone.utc)
            elapsed = max(int((now - created_at).total_seconds() // 86400), 0)

        return cls(
            name=log_group['logGroupName'],
            retention=from_api(log_group.get('retentionInDays')),
            region=region,
            arn=log_group.get('logGroupArn') or log_group.get('arn'),
            stored_bytes=int(log_group.get('storedBytes') or 0),
            created_at=created_at,
            elapsed_days=elapsed,
            log_group_class=log_group.get('logGroupClass') or "STANDARD",
            deletion_protected=bool(log_group.get('deletionProtectionEnabled', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation."""
        return {
            'name': self.name,
            'region': self.region,
            'source': self.source,
            'arn': self.arn,
            'class': self.log_group_class,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'deletion_protected': self.deletion_protected,
            'elapsed_days': self.elapsed_days,
            'retention_in_days': to_api(self.retention),
            'stored_bytes': self.stored_bytes,
        }


@dataclass(frozen=True)
class Page:
    """One page of the inventory."""

    resources: Tuple[ResourceDescriptor, ...]
    next_token: Any = None
    number: int = 0

    def __len__(self) -> int:
        return len(self.resources)

    @property
    def is_last(self) -> bool:
        return self.next_token is None
