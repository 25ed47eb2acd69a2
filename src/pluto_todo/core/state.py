# src/pluto_todo/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..storage.database import Database


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    db: Database
