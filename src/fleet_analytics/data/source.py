"""Reading source contract and an in-memory implementation."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol, Union, runtime_checkable

import pandas as pd

from ..utils.time import parse_instant
from .schemas import Reading

RawReading = Union[Reading, Mapping[str, Any]]


@runtime_checkable
class ReadingSource(Protocol):
    """Persistence collaborator that stores raw readings.

    Implementations return readings for one device ordered by timestamp
    (stable for equal timestamps) and only those where every field in
    ``required_fields`` is present. Retries, if any, belong here and not in
    the engine.
    """

    async def find(
        self,
        device_id: str,
        start: pd.Timestamp,
        end: pd.Timestamp,
        required_fields: Sequence[str] = (),
    ) -> Sequence[RawReading]: ...

    async def latest(
        self, device_id: str, required_fields: Sequence[str] = ()
    ) -> RawReading | None: ...

    async def device_exists(self, device_id: str) -> bool: ...


def _value(record: RawReading, name: str) -> Any:
    if isinstance(record, Reading):
        return getattr(record, name, None)
    return record.get(name)


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return value is pd.NaT


def _has_fields(record: RawReading, required_fields: Sequence[str]) -> bool:
    return all(not is_missing(_value(record, name)) for name in required_fields)


class InMemoryReadingSource:
    """:class:`ReadingSource` over readings held in memory.

    Records are kept exactly as given so malformed samples reach the engine's
    validation boundary. Records whose timestamp cannot be parsed can never
    fall inside a range and are only visible through :meth:`device_exists`.
    """

    def __init__(self, readings: Iterable[RawReading] = ()) -> None:
        self._records: list[RawReading] = list(readings)
        self._times: list[pd.Timestamp | None] = [self._timestamp(r) for r in self._records]

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "InMemoryReadingSource":
        """Build a source from a dataframe with one reading per row."""

        records = []
        for row in df.to_dict(orient="records"):
            records.append({key: value for key, value in row.items() if not is_missing(value)})
        return cls(records)

    @staticmethod
    def _timestamp(record: RawReading) -> pd.Timestamp | None:
        try:
            return parse_instant(_value(record, "timestamp"))
        except (ValueError, TypeError, OverflowError):
            return None

    def _select(self, device_id: str, required_fields: Sequence[str]) -> list[tuple[pd.Timestamp, RawReading]]:
        selected = [
            (ts, record)
            for ts, record in zip(self._times, self._records)
            if ts is not None
            and _value(record, "device_id") == device_id
            and _has_fields(record, required_fields)
        ]
        # list.sort is stable, so equal timestamps keep arrival order
        selected.sort(key=lambda item: item[0])
        return selected

    async def find(
        self,
        device_id: str,
        start: pd.Timestamp,
        end: pd.Timestamp,
        required_fields: Sequence[str] = (),
    ) -> list[RawReading]:
        return [
            record
            for ts, record in self._select(device_id, required_fields)
            if start <= ts <= end
        ]

    async def latest(self, device_id: str, required_fields: Sequence[str] = ()) -> RawReading | None:
        selected = self._select(device_id, required_fields)
        if not selected:
            return None
        return selected[-1][1]

    async def device_exists(self, device_id: str) -> bool:
        return any(_value(record, "device_id") == device_id for record in self._records)

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["InMemoryReadingSource", "RawReading", "ReadingSource", "is_missing"]
