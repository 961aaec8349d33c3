# price_feed.py
# Simulated price table for the broadcast server.
# Usage example:
#   import asyncio
#   from price_feed import PriceFeed
#   async def main():
#       async for ticks in PriceFeed().price_stream(interval_ms=1000):
#           print(ticks)
#   asyncio.run(main())

import asyncio
import random
import time
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Iterable, List, Optional

from models import PriceTick

PRICE_FLOOR = 0.01


@dataclass
class Instrument:
    symbol: str
    price: float       # full precision, rounded only on the way out
    volatility: float  # fixed at creation


DEFAULT_INSTRUMENTS = (
    ("AAPL", 175.50, 0.02),
    ("GOOGL", 140.25, 0.025),
    ("MSFT", 380.75, 0.018),
    ("AMZN", 155.30, 0.022),
    ("TSLA", 242.80, 0.035),
    ("META", 485.20, 0.028),
    ("NVDA", 495.50, 0.03),
    ("NFLX", 475.60, 0.026),
)


def now_ms() -> int:
    return int(time.time() * 1000)


class PriceFeed:
    """Bounded random walk over a fixed set of instruments.

    ``advance()`` mutates the price table in place and must only be called by a
    single owner (the broadcast scheduler). ``snapshot()`` is read-only.
    """

    def __init__(self,
                 instruments: Optional[Iterable[Instrument]] = None,
                 rng: Optional[random.Random] = None,
                 floor: float = PRICE_FLOOR,
                 clock: Callable[[], int] = now_ms):
        if instruments is None:
            instruments = [Instrument(s, p, v) for s, p, v in DEFAULT_INSTRUMENTS]
        self.instruments: List[Instrument] = list(instruments)
        symbols = [inst.symbol for inst in self.instruments]
        if len(set(symbols)) != len(symbols):
            raise ValueError("instrument symbols must be unique")
        for inst in self.instruments:
            if inst.price <= 0:
                raise ValueError(f"{inst.symbol}: price must be > 0")
            if inst.volatility < 0:
                raise ValueError(f"{inst.symbol}: volatility must be >= 0")
        if floor <= 0:
            raise ValueError("floor must be > 0")
        self.rng = rng or random.Random()
        self.floor = floor
        self.clock = clock

    @property
    def symbols(self) -> List[str]:
        return [inst.symbol for inst in self.instruments]

    def price_change(self, price: float, volatility: float) -> float:
        # Zero-mean perturbation in [-price*volatility, +price*volatility)
        return price * volatility * (self.rng.random() - 0.5) * 2

    def advance(self) -> List[PriceTick]:
        timestamp = self.clock()
        ticks = []
        for inst in self.instruments:
            old_price = inst.price
            new_price = max(old_price + self.price_change(old_price, inst.volatility), self.floor)
            change = new_price - old_price
            inst.price = new_price
            ticks.append(PriceTick(
                symbol=inst.symbol,
                price=round(new_price, 2),
                volatility=inst.volatility,
                change=round(change, 2),
                change_percent=round(change / old_price * 100, 2),
                timestamp=timestamp,
            ))
        return ticks

    def snapshot(self) -> List[PriceTick]:
        timestamp = self.clock()
        return [
            PriceTick(symbol=inst.symbol, price=round(inst.price, 2),
                      volatility=inst.volatility, timestamp=timestamp)
            for inst in self.instruments
        ]

    async def price_stream(self, interval_ms: int = 1000) -> AsyncIterator[List[PriceTick]]:
        """Yield one advanced tick set every ``interval_ms``."""
        while True:
            yield self.advance()
            await asyncio.sleep(max(0.0, interval_ms / 1000.0))


if __name__ == "__main__":
    async def _demo():
        async for ticks in PriceFeed().price_stream(interval_ms=1000):
            print([t.to_wire() for t in ticks])
    asyncio.run(_demo())
