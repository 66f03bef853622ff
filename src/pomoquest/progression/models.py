# src/pomoquest/progression/models.py

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any

DEFAULT_THEME = "default"


class ItemKind(StrEnum):
    THEME = "theme"
    COSMETIC = "cosmetic"
    CONSUMABLE = "consumable"


@dataclass(slots=True)
class ProfileStats:
    total_sessions: int = 0
    total_tasks_completed: int = 0
    total_focus_minutes: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_active_date: str | None = None
    daily_sessions: int = 0
    daily_tasks: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class Profile:
    xp: int = 0
    level: int = 1
    coins: int = 0
    total_coins_earned: int = 0
    purchased_items: list[str] = field(default_factory=list)
    active_theme: str = DEFAULT_THEME
    active_cosmetics: list[str] = field(default_factory=list)
    unlocked_achievements: list[str] = field(default_factory=list)
    stats: ProfileStats = field(default_factory=ProfileStats)


@dataclass(frozen=True, slots=True)
class Achievement:
    id: str
    name: str
    icon: str
    description: str
    # (stats, level, total_coins_earned, purchased_items) -> unlocked?
    condition: Callable[[ProfileStats, int, int, list[str]], bool]


@dataclass(frozen=True, slots=True)
class ShopItem:
    id: str
    name: str
    icon: str
    price: int
    description: str
    kind: ItemKind


@dataclass(frozen=True, slots=True)
class Rank:
    min_level: int
    name: str
    icon: str


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Outcome of a domain action that may be refused (purchase, activation)."""

    success: bool
    message: str
    item: ShopItem | None = None
