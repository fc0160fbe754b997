from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class BalanceRow(BaseModel):
    organization_id: int
    node_id: int
    node_type: Optional[str] = None
    node_name: Optional[str] = None
    item_id: int
    item_code: Optional[str] = None
    item_name: Optional[str] = None
    unit_code: Optional[str] = None
    balance_qty: Decimal
