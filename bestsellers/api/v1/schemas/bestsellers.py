# api/v1/schemas/bestsellers.py
from pydantic import BaseModel
from typing import Any, Dict, List, Optional

class BestsellersOut(BaseModel):
    handles: List[str]
    meta: Optional[Dict[str, Any]] = None

class SnapshotOut(BaseModel):
    ok: bool
    snapshot_at: Optional[str] = None
    range: Optional[Dict[str, str]] = None
    segments: List[str] = []
    limit: Optional[int] = None
    written: int = 0
    orders: int = 0
    error: Optional[str] = None
