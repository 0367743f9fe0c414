"""Tunnel registry for the manager's tunnel records."""

from pydantic import BaseModel, Field

from ..common.exceptions import TunnelError
from .models import TunnelRecord, TunnelState


class TunnelRegistryError(TunnelError):
    """Exception raised for tunnel registry operations."""

    pass


class TunnelRegistry(BaseModel):
    """In-memory store of tunnel records keyed by tunnel name.

    Not thread-safe on its own; the owning manager serializes access.
    """

    records: dict[str, TunnelRecord] = Field(
        default_factory=dict, description="Tunnel records by name"
    )

    def add(self, record: TunnelRecord) -> None:
        """Add a record for a tunnel that has none yet.

        Raises:
            TunnelRegistryError: If a record with the same name exists
        """
        if record.name in self.records:
            raise TunnelRegistryError(f"Tunnel '{record.name}' is already registered")
        self.records[record.name] = record

    def replace(self, record: TunnelRecord) -> None:
        """Swap in the next version of an existing record.

        Raises:
            TunnelRegistryError: If no record with that name exists
        """
        if record.name not in self.records:
            raise TunnelRegistryError(f"Tunnel '{record.name}' not found")
        self.records[record.name] = record

    def remove(self, name: str) -> TunnelRecord | None:
        """Drop the record for ``name``, returning it if there was one."""
        return self.records.pop(name, None)

    def get(self, name: str) -> TunnelRecord | None:
        return self.records.get(name)

    def list_records(self, state: TunnelState | None = None) -> list[TunnelRecord]:
        """List records, optionally only those in ``state``."""
        records = list(self.records.values())
        if state is not None:
            records = [r for r in records if r.state == state]
        return records

    def __len__(self) -> int:
        return len(self.records)
