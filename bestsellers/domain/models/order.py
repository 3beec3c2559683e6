from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

class Product(BaseModel):
    product_id: str
    handle: Optional[str] = None
    tags: List[str] = []
    product_type: str = ""

    model_config = {"frozen": True}  # immuable = safe

class LineItem(BaseModel):
    quantity: int = Field(ge=0)
    product: Optional[Product] = None  # None when deleted/unavailable upstream
    model_config = {"frozen": True}

class Order(BaseModel):
    order_id: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    source_name: Optional[str] = None
    line_items: List[LineItem] = []
    model_config = {"frozen": True}

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled_at is not None

class DateWindow(BaseModel):
    """Closed UTC interval: start-of-day of `start` to end-of-day of `end`."""
    start: datetime
    end: datetime
    model_config = {"frozen": True}

    @property
    def from_iso(self) -> str:
        return _iso_ms(self.start)

    @property
    def to_iso(self) -> str:
        return _iso_ms(self.end)

    def as_meta(self) -> dict:
        return {"from": self.from_iso, "to": self.to_iso}


def _iso_ms(dt: datetime) -> str:
    # 2024-05-01T00:00:00.000Z, the format the cache keys have always used
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"
