"""Protocols for the collaborators the tracking core depends on."""

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class StoreProtocol(Protocol):
    """Key-value persistence without multi-key transactions."""

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return stored values for the keys that exist. Missing keys are absent."""
        ...

    async def set(self, values: Mapping[str, Any]) -> None:
        """Store every key in the mapping. Raises on failure."""
        ...


@runtime_checkable
class TabLookupProtocol(Protocol):
    """Best-effort lookup of a tab's current URL."""

    async def get_url(self, tab_id: int) -> str | None:
        """Return the URL currently shown in the tab. May raise if the tab is gone."""
        ...
