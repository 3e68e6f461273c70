"""Abstract interface for the read-only game catalog."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import CatalogGame, GameMetadata


class GameCatalog(ABC):
    """Lookup of imported games by id.

    Both lookups return one entry per requested id, in request order.
    Ids without a catalog record resolve to "Unknown Game" placeholders
    rather than failing the request.
    """

    @abstractmethod
    async def resolve_games(self, game_ids: list[str]) -> list[GameMetadata]: ...

    @abstractmethod
    async def get_games(self, game_ids: list[str]) -> list[CatalogGame]: ...
