from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class OrderCreate(BaseModel):
    """Everything the workflow knows at placement time."""
    ref_id: str
    session_owner_id: str
    target_account_id: str
    amount_code: str
    sku_code: str
    status: str = "unknown"
    raw_response: Optional[Any] = None


class OrderRecord(BaseModel):
    ref_id: str
    session_owner_id: str
    target_account_id: str
    amount_code: str
    sku_code: str
    status: str
    raw_response: Optional[Any] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
