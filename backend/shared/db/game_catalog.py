"""SQLite-backed game catalog."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

import structlog

from shared.dal.game_catalog import GameCatalog
from shared.dal.models import UNKNOWN_GAME_NAME, CatalogGame, GameMetadata

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()

_GAME_COLUMNS = (
    "id, name, year_published, "
    "COALESCE(NULLIF(selected_thumbnail, ''), NULLIF(image, ''), NULLIF(thumbnail, '')), "
    "description, min_players, max_players, min_playtime, max_playtime, rating, min_age, is_expansion, "
    "categories, mechanics"
)


def _json_list(value: str | None) -> list[str]:
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return []
    return parsed if isinstance(parsed, list) else []


def _game_from_row(row: tuple) -> CatalogGame:
    (
        game_id,
        name,
        year_published,
        image,
        description,
        min_players,
        max_players,
        min_playtime,
        max_playtime,
        rating,
        min_age,
        is_expansion,
        categories,
        mechanics,
    ) = row
    return CatalogGame(
        id=game_id,
        name=name,
        year_published=year_published,
        image=image,
        description=description,
        min_players=min_players,
        max_players=max_players,
        min_playtime=min_playtime,
        max_playtime=max_playtime,
        rating=rating,
        min_age=min_age,
        is_expansion=bool(is_expansion),
        categories=_json_list(categories),
        mechanics=_json_list(mechanics),
    )


class SqliteGameCatalog(GameCatalog):
    """Game catalog over the ``games`` table filled by the collection import."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def _fetch(self, game_ids: list[str]) -> dict[str, CatalogGame]:
        unique_ids = list(dict.fromkeys(game_ids))
        if not unique_ids:
            return {}
        placeholders = ", ".join("?" for _ in unique_ids)
        rows = self._db.connection.execute(
            f"SELECT {_GAME_COLUMNS} FROM games WHERE id IN ({placeholders})",  # noqa: S608
            unique_ids,
        ).fetchall()
        games = {row[0]: _game_from_row(row) for row in rows}
        missing = len(unique_ids) - len(games)
        if missing:
            logger.debug("catalog lookup missed games", requested=len(unique_ids), missing=missing)
        return games

    async def resolve_games(self, game_ids: list[str]) -> list[GameMetadata]:
        games = await self._fetch(game_ids)
        resolved: list[GameMetadata] = []
        for game_id in game_ids:
            game = games.get(game_id)
            if game is None:
                resolved.append(GameMetadata(id=game_id))
            else:
                resolved.append(GameMetadata(id=game_id, name=game.name, image=game.image, rating=game.rating))
        return resolved

    async def get_games(self, game_ids: list[str]) -> list[CatalogGame]:
        games = await self._fetch(game_ids)
        return [games.get(game_id) or CatalogGame(id=game_id, name=UNKNOWN_GAME_NAME) for game_id in game_ids]

    async def upsert_game(
        self,
        game: CatalogGame,
        *,
        thumbnail: str | None = None,
        selected_thumbnail: str | None = None,
    ) -> None:
        """Insert or replace a catalog record. ``game.image`` is stored as the full-size image."""
        async with self._lock:
            self._db.connection.execute(
                "INSERT OR REPLACE INTO games (id, name, year_published, image, thumbnail, selected_thumbnail, "
                "description, min_players, max_players, min_playtime, max_playtime, rating, min_age, "
                "is_expansion, categories, mechanics) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    game.id,
                    game.name,
                    game.year_published,
                    game.image,
                    thumbnail,
                    selected_thumbnail,
                    game.description,
                    game.min_players,
                    game.max_players,
                    game.min_playtime,
                    game.max_playtime,
                    game.rating,
                    game.min_age,
                    int(game.is_expansion),
                    json.dumps(game.categories),
                    json.dumps(game.mechanics),
                ),
            )
            self._db.connection.commit()
