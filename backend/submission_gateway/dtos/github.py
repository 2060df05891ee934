"""GitHub device flow DTOs"""

from typing import Optional

from pydantic import BaseModel


class DeviceStartRequest(BaseModel):
    client_id: Optional[str] = None
    scope: Optional[str] = None


class DeviceTokenRequest(BaseModel):
    client_id: Optional[str] = None
    device_code: Optional[str] = None
