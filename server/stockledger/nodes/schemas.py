from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


NodeType = Literal["WAREHOUSE", "LOCATION", "SUPPLIER", "CUSTOMER", "ASSET", "VIRTUAL"]


class NodeCreate(BaseModel):
    node_type: NodeType
    ref_id: str = Field(..., min_length=1, max_length=64)
    name: Optional[str] = Field(None, max_length=255)
    code: Optional[str] = Field(None, max_length=64)
    is_stocked: Optional[bool] = None
    meta: Optional[dict[str, Any]] = None


class NodeResponse(BaseModel):
    id: int
    organization_id: int
    node_type: str
    ref_table: str
    ref_id: str
    code: Optional[str] = None
    name: str
    is_stocked: bool
    meta_json: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
