from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


MovementStatus = Literal["DRAFT", "POSTED", "CANCELLED"]


class MovementLineCreate(BaseModel):
    item_id: int
    unit_id: Optional[int] = None
    from_node_id: int
    to_node_id: int
    quantity: Decimal


class MovementEventCreate(BaseModel):
    event_type: str = Field("MOVE", min_length=1, max_length=32)
    status: Literal["DRAFT", "POSTED"] = "POSTED"
    occurred_at: Optional[datetime] = None
    reference_type: Optional[str] = Field(None, max_length=64)
    reference_id: Optional[str] = Field(None, max_length=64)
    note: Optional[str] = None
    lines: List[MovementLineCreate] = Field(..., min_length=1)


class MovementEventUpdate(BaseModel):
    event_type: Optional[str] = Field(None, min_length=1, max_length=32)
    status: Optional[MovementStatus] = None
    occurred_at: Optional[datetime] = None
    reference_type: Optional[str] = Field(None, max_length=64)
    reference_id: Optional[str] = Field(None, max_length=64)
    note: Optional[str] = None


class MovementLineUpdate(BaseModel):
    """Full replacement of a DRAFT line plus an optional partial event header."""

    event: MovementEventUpdate = Field(default_factory=MovementEventUpdate)
    line: MovementLineCreate


class MovementLineResponse(BaseModel):
    id: int
    event_id: int
    line_no: int
    item_id: int
    unit_id: int
    from_node_id: int
    to_node_id: int
    quantity: Decimal

    model_config = ConfigDict(from_attributes=True)


class MovementEventResponse(BaseModel):
    id: int
    organization_id: int
    event_type: str
    status: str
    occurred_at: datetime
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    note: Optional[str] = None
    created_by_user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MovementEventDetailResponse(BaseModel):
    event: MovementEventResponse
    lines: List[MovementLineResponse]


class MovementListRow(BaseModel):
    line_id: int
    line_no: int
    event_id: int
    event_type: str
    status: str
    occurred_at: datetime
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    note: Optional[str] = None
    item_id: int
    item_code: Optional[str] = None
    item_name: Optional[str] = None
    unit_id: int
    unit_code: Optional[str] = None
    quantity: Decimal
    from_node_id: int
    from_node_type: Optional[str] = None
    from_node_name: Optional[str] = None
    to_node_id: int
    to_node_type: Optional[str] = None
    to_node_name: Optional[str] = None
