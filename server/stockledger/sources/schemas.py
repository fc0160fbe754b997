from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PartialUpdate(BaseModel):
    """Partial update body; omitted fields stay as they are, but NOT NULL columns refuse an explicit null."""

    @field_validator("name", "kind", "active", mode="before", check_fields=False)
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null.")
        return value


class LocationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: Optional[int] = None


class LocationCreate(LocationBase):
    pass


class LocationUpdate(PartialUpdate):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    parent_id: Optional[int] = None


class LocationResponse(LocationBase):
    id: int
    organization_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WarehouseBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    location_id: Optional[int] = None


class WarehouseCreate(WarehouseBase):
    pass


class WarehouseUpdate(PartialUpdate):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    location_id: Optional[int] = None


class WarehouseResponse(WarehouseBase):
    id: int
    organization_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    kind: str = Field("SUPPLIER", min_length=1, max_length=32)
    email: Optional[str] = None
    phone: Optional[str] = None
    active: bool = True


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(PartialUpdate):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    kind: Optional[str] = Field(None, min_length=1, max_length=32)
    email: Optional[str] = None
    phone: Optional[str] = None
    active: Optional[bool] = None


class SupplierResponse(SupplierBase):
    id: int
    organization_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    active: bool = True


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(PartialUpdate):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    active: Optional[bool] = None


class CustomerResponse(CustomerBase):
    id: int
    organization_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
