"""
Event model for the events service.

Each attribute maps to a column in the `events` table.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

# Columns an owner may write through create/update.
EDITABLE_FIELDS = (
    "name",
    "description",
    "location",
    "date_time",
    "image_data",
    "color",
    "price",
    "priority",
    "tickets_available",
)


@dataclass
class Event:
    name: str
    description: str
    location: str
    date_time: datetime
    user_id: Optional[int] = None
    event_id: Optional[int] = None
    image_data: Optional[str] = None
    color: Optional[str] = None
    price: Optional[float] = None
    priority: Optional[str] = None
    tickets_available: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Event":
        """Build an Event from a DictCursor row."""
        price = row["price"]
        if isinstance(price, Decimal):
            price = float(price)
        return cls(
            event_id=row["event_id"],
            name=row["name"],
            description=row["description"],
            location=row["location"],
            date_time=row["date_time"],
            user_id=row["user_id"],
            image_data=row["image_data"],
            color=row["color"],
            price=price,
            priority=row["priority"],
            tickets_available=row["tickets_available"],
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation (ISO-8601 date_time, optional fields omitted when empty)."""
        data = asdict(self)
        if isinstance(self.date_time, datetime):
            data["date_time"] = self.date_time.isoformat()
        for key in ("image_data", "color", "price", "priority"):
            if data[key] is None:
                del data[key]
        return data
