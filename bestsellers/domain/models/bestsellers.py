from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional

# Where a returned list came from
Provenance = Literal["snapshot", "memory", "redis", "live", "live-empty", "stale", "empty"]

class BestsellersResult(BaseModel):
    """
    Ranked handle list, the value stored in every cache layer.
    `meta` carries range/segments/source and, for cached values, `cached_at` (epoch seconds).
    """
    handles: List[str] = []
    meta: Dict[str, Any] = Field(default_factory=dict)

    def tagged(self, source: Provenance, **extra: Any) -> "BestsellersResult":
        """Return a copy with provenance (and optional diagnostics) folded into meta."""
        return self.model_copy(update={"meta": {**self.meta, "source": source, **extra}})

    def public(self, debug: bool) -> Dict[str, Any]:
        """Response body: meta is exposed in debug mode, or when nothing could be served."""
        out: Dict[str, Any] = {"handles": list(self.handles)}
        if debug or self.meta.get("source") == "empty":
            out["meta"] = dict(self.meta)
        return out

class SnapshotSummary(BaseModel):
    ok: bool
    snapshot_at: Optional[str] = None
    range: Optional[Dict[str, str]] = None
    segments: List[str] = []
    limit: int
    written: int = 0
    orders: int = 0
    error: Optional[str] = None
