"""Weighted distribution strings — ``KEY1:PCT1,KEY2:PCT2,...``."""

from __future__ import annotations

import random
import re
from collections.abc import Iterator

from pydantic import BaseModel, ConfigDict

from src.generator.exceptions import DistributionError

UNKNOWN_VALUE = "unknown"

_INT_RE = re.compile(r"^[+-]?\d+$")


class WeightedValue(BaseModel):
    """One candidate value in a distribution table."""

    model_config = ConfigDict(frozen=True)

    value: str
    weight: int


def parse_distribution(dist: str) -> dict[str, int]:
    """Parse a distribution string into ``{value: percent}``.

    Whitespace around keys and percentages is trimmed and empty segments
    (stray commas) are skipped.  A repeated key keeps its last percentage,
    but every occurrence counts toward the total.

    Raises:
        DistributionError: empty input, a segment that is not ``KEY:PCT``,
            a non-integer or out-of-range percentage, or a total != 100.
    """
    if not dist:
        raise DistributionError("distribution string cannot be empty")

    result: dict[str, int] = {}
    total = 0
    for raw_part in dist.split(","):
        part = raw_part.strip()
        if not part:
            continue

        kv = part.split(":")
        if len(kv) != 2:
            raise DistributionError(
                f"invalid distribution format: {part} (expected KEY:PERCENT)"
            )

        key = kv[0].strip()
        pct_text = kv[1].strip()
        if not _INT_RE.match(pct_text):
            raise DistributionError(f"invalid percentage in {part}: {pct_text!r}")
        percent = int(pct_text)
        if percent < 0 or percent > 100:
            raise DistributionError(f"percentage must be 0-100, got {percent} in {part}")

        result[key] = percent
        total += percent

    if total != 100:
        raise DistributionError(f"distribution percentages must sum to 100, got {total}")
    return result


class DistributionTable:
    """Immutable, fixed-order weighted table for one alert field."""

    def __init__(self, entries: list[WeightedValue] | tuple[WeightedValue, ...]) -> None:
        self._entries: tuple[WeightedValue, ...] = tuple(entries)
        self._total = sum(e.weight for e in self._entries)

    @classmethod
    def parse(cls, dist: str) -> DistributionTable:
        parsed = parse_distribution(dist)
        return cls([WeightedValue(value=v, weight=w) for v, w in parsed.items()])

    @property
    def entries(self) -> tuple[WeightedValue, ...]:
        return self._entries

    @property
    def total_weight(self) -> int:
        return self._total

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[WeightedValue]:
        return iter(self._entries)

    def as_dict(self) -> dict[str, int]:
        return {e.value: e.weight for e in self._entries}

    def select(self, rng: random.Random) -> str:
        """Pick a value by cumulative weight using ``rng``.

        Draws ``r`` in ``[0, total)`` and returns the first entry whose
        running sum exceeds it.
        """
        if not self._entries or self._total <= 0:
            return UNKNOWN_VALUE

        r = rng.randrange(self._total)
        cumulative = 0
        for entry in self._entries:
            cumulative += entry.weight
            if r < cumulative:
                return entry.value
        return self._entries[-1].value

    def __repr__(self) -> str:
        body = ",".join(f"{e.value}:{e.weight}" for e in self._entries)
        return f"DistributionTable({body!r})"
