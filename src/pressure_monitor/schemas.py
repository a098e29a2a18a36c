from typing import List, Optional

from pydantic import BaseModel, Field

from pressure_monitor.core.models.connection_state import ConnectionStatus


class AppHealthOK(BaseModel):
    status: str
    app: str


class ConnectRequest(BaseModel):
    address: str = Field(..., description="IP address or host name of the pressure device")


class ConnectionStateResponse(BaseModel):
    status: ConnectionStatus
    message: Optional[str] = None


class ReadingResponse(BaseModel):
    value: float


class ReadingsList(BaseModel):
    list: List[float]
    count: int
    capacity: int
