"""
Data models for the usage ledger.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional


@dataclass(frozen=True)
class UsageRecord:
    """Immutable fact of one model invocation.

    Append-only: once written a record is never updated or deleted.
    """
    user_id: str
    feature_type: str
    model: str
    input_tokens: int
    output_tokens: int
    response_time_ms: int
    timestamp: datetime
    succeeded: bool = True
    request_id: Optional[str] = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class UsageStats:
    """Aggregated usage of one user over a reporting period."""
    total_requests: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0
    features: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "totalRequests": self.total_requests,
            "totalTokens": self.total_tokens,
            "costUSD": self.cost_usd,
            "features": dict(self.features),
        }
