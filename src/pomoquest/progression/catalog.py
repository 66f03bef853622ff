# src/pomoquest/progression/catalog.py

"""Static game data: achievements, shop items, ranks."""

from __future__ import annotations

from .models import Achievement, ItemKind, Rank, ShopItem

XP_PER_LEVEL = 100
COINS_PER_LEVEL = 10
ACHIEVEMENT_XP_BONUS = 50

# Checked in this order; predicates are independent of each other.
ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement("first_pomodoro", "First Tomato", "🍅", "Finish 1 focus session",
                lambda s, lvl, tc, pi: s.total_sessions >= 1),
    Achievement("first_todo", "First Task", "📝", "Complete 1 task",
                lambda s, lvl, tc, pi: s.total_tasks_completed >= 1),
    Achievement("fire_streak", "On Fire", "🔥", "5 focus sessions in one day",
                lambda s, lvl, tc, pi: s.daily_sessions >= 5),
    Achievement("diligent", "Diligent", "💯", "Complete 10 tasks",
                lambda s, lvl, tc, pi: s.total_tasks_completed >= 10),
    Achievement("productivity_monster", "Productivity Monster", "🚀", "Complete 50 tasks",
                lambda s, lvl, tc, pi: s.total_tasks_completed >= 50),
    Achievement("marathon", "Marathon", "⏱️", "10 hours of focus",
                lambda s, lvl, tc, pi: s.total_focus_minutes >= 600),
    Achievement("level_10", "Level 10", "🏆", "Reach level 10",
                lambda s, lvl, tc, pi: lvl >= 10),
    Achievement("level_25", "Level 25", "👑", "Reach level 25",
                lambda s, lvl, tc, pi: lvl >= 25),
    Achievement("level_50", "Level 50", "🌟", "Reach level 50",
                lambda s, lvl, tc, pi: lvl >= 50),
    Achievement("collector", "Collector", "💰", "Earn 100 coins",
                lambda s, lvl, tc, pi: tc >= 100),
    Achievement("first_purchase", "First Purchase", "🛒", "Buy your first item",
                lambda s, lvl, tc, pi: len(pi) >= 1),
    Achievement("daily_routine", "Daily Routine", "📅", "7 day streak",
                lambda s, lvl, tc, pi: s.longest_streak >= 7),
    Achievement("focus_master", "Focus Master", "🎯", "100 focus sessions",
                lambda s, lvl, tc, pi: s.total_sessions >= 100),
    Achievement("hardcore", "Hardcore", "💎", "200 focus sessions",
                lambda s, lvl, tc, pi: s.total_sessions >= 200),
)

SHOP_ITEMS: tuple[ShopItem, ...] = (
    ShopItem("theme_dark", "Dark Theme", "🌙", 50, "Unlock dark mode", ItemKind.THEME),
    ShopItem("theme_nature", "Nature Palette", "🌿", 30, "Green and brown theme", ItemKind.THEME),
    ShopItem("theme_ocean", "Ocean Palette", "🌊", 30, "Blue theme", ItemKind.THEME),
    ShopItem("theme_sunset", "Sunset Palette", "🌅", 30, "Orange and pink theme", ItemKind.THEME),
    ShopItem("bonus_break", "Bonus Break", "⏰", 100, "+5 minutes of break, once", ItemKind.CONSUMABLE),
    ShopItem("sound_pack", "Sound Pack", "🎵", 75, "New timer sounds", ItemKind.COSMETIC),
    ShopItem("golden_frame", "Golden Frame", "✨", 150, "Premium task styling", ItemKind.COSMETIC),
    ShopItem("double_xp", "Double XP", "⚡", 200, "One hour of double XP", ItemKind.CONSUMABLE),
)

RANKS: tuple[Rank, ...] = (
    Rank(1, "Beginner", "🌱"),
    Rank(6, "Apprentice", "⭐"),
    Rank(11, "Journeyman", "🔥"),
    Rank(16, "Expert", "💪"),
    Rank(21, "Master", "⚡"),
    Rank(31, "Grandmaster", "🎯"),
    Rank(41, "Champion", "👑"),
    Rank(51, "Virtuoso", "💎"),
    Rank(61, "Elite", "🏆"),
    Rank(81, "Legend", "🌟"),
)

_ACHIEVEMENTS_BY_ID = {a.id: a for a in ACHIEVEMENTS}
_ITEMS_BY_ID = {i.id: i for i in SHOP_ITEMS}


def get_achievement(achievement_id: str) -> Achievement | None:
    return _ACHIEVEMENTS_BY_ID.get(achievement_id)


def get_item(item_id: str) -> ShopItem | None:
    return _ITEMS_BY_ID.get(item_id)


def xp_threshold(level: int) -> int:
    """Experience needed to go from `level` to `level + 1`."""
    return max(1, int(level)) * XP_PER_LEVEL


def rank_for_level(level: int) -> Rank:
    for rank in reversed(RANKS):
        if level >= rank.min_level:
            return rank
    return RANKS[0]
