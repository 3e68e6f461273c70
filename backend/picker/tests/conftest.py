"""Shared fixtures for picker tests."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

import pytest

from picker.sessions.service import SessionService
from picker.tests.helpers.factories import StepClock, make_game
from shared.db import Database, SqliteGameCatalog, SqliteSessionRepository

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def db(tmp_path: Path):
    db = Database(tmp_path / "picker.db")
    db.connect()
    yield db
    db.close()


@pytest.fixture
def repo(db: Database) -> SqliteSessionRepository:
    return SqliteSessionRepository(db)


@pytest.fixture
async def catalog(db: Database) -> SqliteGameCatalog:
    catalog = SqliteGameCatalog(db)
    await catalog.upsert_game(make_game("g1", "Azul", rating=7.8, image="azul.jpg"))
    await catalog.upsert_game(make_game("g2", "Brass: Birmingham", rating=8.6))
    await catalog.upsert_game(make_game("g3", "Cascadia", rating=7.9), thumbnail="cascadia-thumb.jpg")
    return catalog


@pytest.fixture
def service(repo: SqliteSessionRepository, catalog: SqliteGameCatalog) -> SessionService:
    return SessionService(repo, catalog, rng=random.Random(42), clock=StepClock())
