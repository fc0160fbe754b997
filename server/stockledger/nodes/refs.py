from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

VIRTUAL_REF_TABLE = "virtual"

EXTERNAL_KEY = "EXTERNAL"
ADJUSTMENT_KEY = "ADJUSTMENT"

STANDARD_VIRTUAL_NODES: list[tuple[str, str]] = [
    (EXTERNAL_KEY, "External"),
    (ADJUSTMENT_KEY, "Adjustment"),
]


@dataclass(frozen=True)
class NodeRef:
    node_type: str
    ref_table: str
    ref_id: str


def warehouse_ref(warehouse_id: int) -> NodeRef:
    return NodeRef("WAREHOUSE", "warehouses", str(warehouse_id))


def location_ref(location_id: int) -> NodeRef:
    return NodeRef("LOCATION", "locations", str(location_id))


def supplier_ref(supplier_id: int) -> NodeRef:
    return NodeRef("SUPPLIER", "suppliers", str(supplier_id))


def customer_ref(customer_id: int) -> NodeRef:
    return NodeRef("CUSTOMER", "customers", str(customer_id))


def virtual_ref(key: str) -> NodeRef:
    return NodeRef("VIRTUAL", VIRTUAL_REF_TABLE, key)


class NodeMeta(BaseModel):
    # Extra keys are kept for heterogeneous metadata that has no typed field yet.
    model_config = ConfigDict(extra="allow")


class WarehouseMeta(NodeMeta):
    kind: Literal["WAREHOUSE"] = "WAREHOUSE"
    location_id: Optional[int] = None


class LocationMeta(NodeMeta):
    kind: Literal["LOCATION"] = "LOCATION"
    parent_id: Optional[int] = None


class SupplierMeta(NodeMeta):
    kind: str
    active: bool = True
    email: Optional[str] = None
    phone: Optional[str] = None


class CustomerMeta(NodeMeta):
    active: bool = True
    email: Optional[str] = None
    phone: Optional[str] = None


class VirtualMeta(NodeMeta):
    kind: str
