"""Read/delete projection of the artifact store used by the tracks API."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from speakercast.services.storage import ArtifactStore


@dataclass(frozen=True)
class TrackInfo:
    filename: str
    size: int
    created_at: datetime
    modified_at: datetime


class Catalog:
    """Lists, describes and removes playable tracks. Holds no state."""

    def __init__(self, store: ArtifactStore) -> None:
        self._store = store

    async def list_playable(self) -> list[str]:
        return [artifact.identifier for artifact in await self._store.list()]

    async def info(self, name: str) -> TrackInfo:
        """Raise :class:`NotFoundError` when ``name`` is not stored."""

        artifact = await self._store.stat(name)
        return TrackInfo(
            filename=artifact.identifier,
            size=artifact.size,
            created_at=artifact.created_at,
            modified_at=artifact.modified_at,
        )

    async def remove(self, name: str) -> bool:
        return await self._store.delete(name)


__all__ = ["Catalog", "TrackInfo"]
