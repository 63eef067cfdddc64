"""
Pydantic schemas for the exhibition catalog.
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, computed_field

from app.core.calendar import schedule_text


class ExhibitionResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    duration_minutes: int
    price: Decimal
    capacity: int
    schedule_days: list[int]
    is_active: bool

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def schedule_text(self) -> str:
        return schedule_text(self.schedule_days)

