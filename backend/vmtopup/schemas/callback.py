from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ProviderCallbackData(BaseModel):
    status: Optional[Any] = None

    model_config = ConfigDict(extra="allow")


class ProviderCallback(BaseModel):
    """
    Provider notification body. Only ref_id is required; status may sit at the
    top level or one level down under "data". Everything else is kept as-is.
    """
    ref_id: Any
    status: Optional[Any] = None
    data: Optional[Any] = None

    model_config = ConfigDict(extra="allow")

    def resolved_status(self) -> str:
        if self.status not in (None, ""):
            return str(self.status)
        if isinstance(self.data, dict):
            nested = ProviderCallbackData.model_validate(self.data).status
            if nested not in (None, ""):
                return str(nested)
        return "unknown"


class CallbackAck(BaseModel):
    ok: bool
    detail: str
