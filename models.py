# models.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional


class WireModel(BaseModel):
    # Browser clients speak camelCase; Python code uses snake_case names.
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_json(self, **kwargs) -> str:
        return self.model_dump_json(by_alias=True, **kwargs)


# One instrument's state as sent to clients
class PriceTick(WireModel):
    symbol: str
    price: float
    volatility: float
    change: float = 0.0
    change_percent: float = Field(default=0.0, alias="changePercent")
    timestamp: int  # epoch milliseconds


class MetricsSnapshot(WireModel):
    connections: int
    total_messages_sent: int = Field(alias="totalMessagesSent")
    messages_per_second: float = Field(alias="messagesPerSecond")
    throughput: int
    uptime: int  # whole seconds


# --- Server -> client frames ---

class InitialMessage(WireModel):
    type: Literal["initial"] = "initial"
    stocks: List[PriceTick]
    client_id: str = Field(alias="clientId")
    server_time: int = Field(alias="serverTime")


class UpdateMessage(WireModel):
    type: Literal["update"] = "update"
    stocks: List[PriceTick]
    metrics: MetricsSnapshot
    server_time: int = Field(alias="serverTime")


class PongMessage(WireModel):
    type: Literal["pong"] = "pong"
    client_time: Any = Field(default=None, alias="clientTime")
    server_time: int = Field(alias="serverTime")


# --- HTTP responses ---

class HealthResponse(BaseModel):
    status: Literal["healthy"] = "healthy"
    timestamp: int
    uptime: float


class StocksResponse(BaseModel):
    stocks: List[PriceTick]
    timestamp: int


class ServiceDescriptor(BaseModel):
    name: str
    version: str
    status: str
    endpoints: Dict[str, str]


class AnalyzeRequest(BaseModel):
    companies: Optional[List[str]] = None
