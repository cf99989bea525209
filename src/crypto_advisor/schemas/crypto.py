"""Crypto price, history and advisor schemas."""
from datetime import datetime, timezone

from pydantic import (BaseModel, ConfigDict, Field, field_validator,
                      model_validator)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class CoinQuote(BaseModel):
    """One row of /api/crypto/prices/latest/. Unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    symbol: str
    name: str | None = None
    price_usd: float | None = None
    change_24h_percent: float | None = None
    logo_url: str | None = None
    market_cap_usd: float | None = None
    market_cap_rank: int | None = None
    volume_24h_usd: float | None = None
    circulating_supply: float | None = None
    total_supply: float | None = None
    max_supply: float | None = None
    ath: float | None = None
    atl: float | None = None


class CoinPage(BaseModel):
    """A decoded page of coins plus whatever pagination the backend reported."""

    coins: list[CoinQuote] = Field(default_factory=list)
    count: int | None = None
    total_pages: int | None = None


class HistoryPoint(BaseModel):
    """A `(timestamp, price)` pair; the backend sends it as a 2-item array."""

    timestamp: datetime
    price: float

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, value: object) -> object:
        if isinstance(value, (list, tuple)):
            ts = value[0] if len(value) > 0 else None
            price = value[1] if len(value) > 1 else None
            return {
                "timestamp": ts if ts is not None else _EPOCH,
                "price": price if price is not None else 0.0,
            }
        return value

    @property
    def sort_key(self) -> float:
        ts = self.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts.timestamp()


class HistorySeries(BaseModel):
    """Price history for one symbol, always oldest first."""

    symbol: str | None = None
    points: list[HistoryPoint] = Field(default_factory=list)

    @model_validator(mode="after")
    def _chronological(self) -> "HistorySeries":
        # stable: equal timestamps keep backend order
        self.points = sorted(self.points, key=lambda p: p.sort_key)
        return self

    @property
    def values(self) -> list[float]:
        return [p.price for p in self.points]

    @property
    def change_percent(self) -> float | None:
        """Change from the oldest to the newest price, in percent."""
        if len(self.points) < 2 or self.points[0].price == 0:
            return None
        first, last = self.points[0].price, self.points[-1].price
        return (last - first) / first * 100


class AskRequest(BaseModel):
    question: str


class AdvisorAnswer(BaseModel):
    answer: str = ""

    @field_validator("answer", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> object:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)
