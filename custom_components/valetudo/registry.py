"""Owned collection of the robots managed by one bridge."""
from __future__ import annotations

import logging
from collections.abc import Iterator

from .models import DeviceRecord

_LOGGER = logging.getLogger(__name__)


class DeviceRegistry:
    """Map of system id to DeviceRecord, in registration order.

    Only the bridge adds and removes records, and it does so outside of any
    poll cycle.
    """

    def __init__(self) -> None:
        self._records: dict[str, DeviceRecord] = {}

    def add(self, record: DeviceRecord) -> tuple[DeviceRecord, bool]:
        """Store record, or update the address of the known record with its identity.

        Returns the stored record and whether it was newly created.
        """
        existing = self._records.get(record.system_id)
        if existing is None:
            self._records[record.system_id] = record
            _LOGGER.info("[%s] Registered robot %s at %s", record.name, record.system_id, record.host)
            return record, True

        if existing.host != record.host:
            _LOGGER.info("[%s] Address changed from %s to %s", existing.name, existing.host, record.host)
            existing.host = record.host
        return existing, False

    def remove(self, system_id: str) -> DeviceRecord | None:
        return self._records.pop(system_id, None)

    def get(self, system_id: str) -> DeviceRecord | None:
        return self._records.get(system_id)

    def index_of(self, system_id: str) -> int:
        for index, key in enumerate(self._records):
            if key == system_id:
                return index
        raise KeyError(system_id)

    def __iter__(self) -> Iterator[DeviceRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, system_id: object) -> bool:
        return system_id in self._records
