# src/pomoquest/progression/engine.py

"""
Progression engine: experience, levels, achievements, coins and the shop.

Key invariants:
- profile.xp < xp_threshold(profile.level) after every public call
  (every xp increase runs the level-up loop, achievement bonuses included);
- unlocked_achievements only grows;
- coins never go negative, a non-consumable item is owned at most once.

Refusals (unknown item, not enough coins, ...) are returned as ActionResult,
never raised.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.clock import day_key, yesterday_of
from ..core.events import AchievementUnlocked, EventBus, LevelUp, PurchaseMade, StateChanged
from ..core.ports import Clock
from .catalog import (
    ACHIEVEMENT_XP_BONUS,
    ACHIEVEMENTS,
    COINS_PER_LEVEL,
    SHOP_ITEMS,
    get_item,
    rank_for_level,
    xp_threshold,
)
from .models import (
    DEFAULT_THEME,
    Achievement,
    ActionResult,
    ItemKind,
    Profile,
    ProfileStats,
    Rank,
    ShopItem,
)
from .notifications import NoticeKind, NotificationCenter

logger = logging.getLogger(__name__)

_INT_FIELDS = ("xp", "level", "coins", "total_coins_earned")
_LIST_FIELDS = ("purchased_items", "active_cosmetics", "unlocked_achievements")
_STAT_INT_FIELDS = (
    "total_sessions",
    "total_tasks_completed",
    "total_focus_minutes",
    "current_streak",
    "longest_streak",
    "daily_sessions",
    "daily_tasks",
)


def validate_profile_data(data: Any) -> dict[str, Any]:
    """
    Check an exported profile and return only the known, well-typed fields.

    Raises TypeError/ValueError on malformed input. Unknown keys are dropped.
    """
    if not isinstance(data, dict):
        raise TypeError("progression must be an object")

    out: dict[str, Any] = {}
    for name in _INT_FIELDS:
        if name in data and data[name] is not None:
            out[name] = _non_negative_int(data[name], name)
    if "level" in out and out["level"] < 1:
        raise ValueError("level must be >= 1")

    for name in _LIST_FIELDS:
        if name in data and data[name] is not None:
            raw = data[name]
            if not isinstance(raw, list) or not all(isinstance(x, str) for x in raw):
                raise TypeError(f"{name} must be a list of strings")
            out[name] = list(dict.fromkeys(raw))

    if data.get("active_theme") is not None:
        if not isinstance(data["active_theme"], str):
            raise TypeError("active_theme must be a string")
        out["active_theme"] = data["active_theme"] or DEFAULT_THEME

    if data.get("stats") is not None:
        raw_stats = data["stats"]
        if not isinstance(raw_stats, dict):
            raise TypeError("stats must be an object")
        stats: dict[str, Any] = {}
        for name in _STAT_INT_FIELDS:
            if name in raw_stats and raw_stats[name] is not None:
                stats[name] = _non_negative_int(raw_stats[name], f"stats.{name}")
        if "last_active_date" in raw_stats:
            last = raw_stats["last_active_date"]
            if last is not None and not isinstance(last, str):
                raise TypeError("stats.last_active_date must be a string")
            stats["last_active_date"] = last
        out["stats"] = stats

    return out


def _non_negative_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number")
    n = int(value)
    if n < 0:
        raise ValueError(f"{name} must be >= 0")
    return n


class ProgressionEngine:
    def __init__(
        self,
        *,
        clock: Clock,
        bus: EventBus,
        notifications: NotificationCenter | None = None,
        profile: Profile | None = None,
    ) -> None:
        self._clock = clock
        self._bus = bus
        self.notifications = notifications or NotificationCenter(clock)
        self.profile = profile or Profile()

    # ---- derived values ----

    @property
    def current_rank(self) -> Rank:
        return rank_for_level(self.profile.level)

    @property
    def xp_for_next_level(self) -> int:
        return xp_threshold(self.profile.level)

    @property
    def xp_progress(self) -> float:
        """Percent of the way to the next level (0..100)."""
        return min(self.profile.xp / self.xp_for_next_level * 100.0, 100.0)

    @property
    def xp_to_next_level(self) -> int:
        return self.xp_for_next_level - self.profile.xp

    @property
    def shop_items(self) -> tuple[ShopItem, ...]:
        return SHOP_ITEMS

    # ---- internals ----

    def _changed(self) -> None:
        self._bus.publish(StateChanged("profile"))

    def _apply_level_ups(self) -> None:
        # Loop: one grant (or bonus) may cross several thresholds.
        while self.profile.xp >= xp_threshold(self.profile.level):
            self.profile.xp -= xp_threshold(self.profile.level)
            self._level_up()

    def _level_up(self) -> None:
        p = self.profile
        p.level += 1
        coins = p.level * COINS_PER_LEVEL
        p.coins += coins
        p.total_coins_earned += coins

        rank = self.current_rank
        self.notifications.raise_notice(
            NoticeKind.LEVEL_UP,
            f"Level {p.level}!",
            level=p.level,
            rank=rank.name,
            coins_earned=coins,
        )
        logger.info("Level up -> %s (%s) +%s coins", p.level, rank.name, coins)
        self._bus.publish(LevelUp(level=p.level, coins_earned=coins, rank=rank.name))

        self.evaluate_achievements()

    def _unlock(self, achievement: Achievement) -> None:
        self.profile.unlocked_achievements.append(achievement.id)
        self.profile.xp += ACHIEVEMENT_XP_BONUS
        self.notifications.raise_notice(
            NoticeKind.ACHIEVEMENT,
            achievement.name,
            achievement_id=achievement.id,
            icon=achievement.icon,
            description=achievement.description,
        )
        logger.info("Achievement unlocked: %s", achievement.id)
        self._bus.publish(AchievementUnlocked(achievement_id=achievement.id, name=achievement.name))
        self._apply_level_ups()

    # ---- daily reset / streak ----

    def check_daily_reset(self) -> bool:
        """
        First activity of a new day: update the streak and reset daily counters.

        Streak +1 when the last active day was exactly yesterday, otherwise 1.
        Evaluated once per day boundary (idempotent within the same day).
        """
        today = self._clock.today()
        today_key = day_key(today)
        s = self.profile.stats
        if s.last_active_date == today_key:
            return False

        if s.last_active_date == day_key(yesterday_of(today)):
            s.current_streak += 1
        else:
            s.current_streak = 1
        s.longest_streak = max(s.longest_streak, s.current_streak)

        s.daily_sessions = 0
        s.daily_tasks = 0
        s.last_active_date = today_key
        logger.debug("Profile day rollover -> %s streak=%s", today_key, s.current_streak)
        return True

    # ---- public API ----

    def grant_experience(self, amount: int, source: str = "unknown") -> None:
        if amount < 0:
            raise ValueError("amount must be >= 0")

        self.check_daily_reset()

        self.profile.xp += int(amount)
        self._apply_level_ups()

        s = self.profile.stats
        if source == "session":
            s.total_sessions += 1
            s.daily_sessions += 1
        elif source == "task":
            s.total_tasks_completed += 1
            s.daily_tasks += 1

        self.evaluate_achievements()
        logger.debug("XP +%s (%s) -> level=%s xp=%s", amount, source, self.profile.level, self.profile.xp)
        self._changed()

    def add_focus_minutes(self, minutes: int) -> None:
        if minutes < 0:
            raise ValueError("minutes must be >= 0")
        self.profile.stats.total_focus_minutes += int(minutes)
        self.evaluate_achievements()
        self._changed()

    def evaluate_achievements(self) -> list[Achievement]:
        """Unlock every achievement whose condition now holds. Returns the new ones."""
        p = self.profile
        unlocked: list[Achievement] = []
        for achievement in ACHIEVEMENTS:
            if achievement.id in p.unlocked_achievements:
                continue
            if achievement.condition(p.stats, p.level, p.total_coins_earned, p.purchased_items):
                self._unlock(achievement)
                unlocked.append(achievement)
        return unlocked

    def has_item(self, item_id: str) -> bool:
        return item_id in self.profile.purchased_items

    def purchase(self, item_id: str) -> ActionResult:
        item = get_item(item_id)
        if item is None:
            return ActionResult(False, f"Unknown item: {item_id}")

        if self.has_item(item_id) and item.kind != ItemKind.CONSUMABLE:
            return ActionResult(False, f"{item.name} already owned", item)

        if self.profile.coins < item.price:
            return ActionResult(
                False, f"Not enough coins for {item.name} ({self.profile.coins}/{item.price})", item
            )

        self.profile.coins -= item.price
        if item.kind != ItemKind.CONSUMABLE:
            self.profile.purchased_items.append(item.id)

        logger.info("Purchased %s for %s coins (left=%s)", item.id, item.price, self.profile.coins)
        self._bus.publish(PurchaseMade(item_id=item.id, price=item.price))
        self.evaluate_achievements()
        self._changed()
        return ActionResult(True, f"{item.name} purchased!", item)

    def activate(self, item_id: str) -> ActionResult:
        """
        Activate or deactivate an owned item.

        Themes are exclusive: activating one replaces the current theme and
        activating the active theme again reverts to the default. Cosmetics
        toggle independently.
        """
        item = get_item(item_id)
        if item is None:
            return ActionResult(False, f"Unknown item: {item_id}")

        if item.kind == ItemKind.CONSUMABLE:
            return ActionResult(False, f"{item.name} cannot be activated", item)

        if not self.has_item(item_id):
            return ActionResult(False, f"{item.name} not purchased", item)

        p = self.profile
        if item.kind == ItemKind.THEME:
            if p.active_theme == item.id:
                p.active_theme = DEFAULT_THEME
                self._changed()
                return ActionResult(True, f"{item.name} deactivated", item)
            p.active_theme = item.id
            self._changed()
            return ActionResult(True, f"{item.name} activated!", item)

        if item.id in p.active_cosmetics:
            p.active_cosmetics.remove(item.id)
            self._changed()
            return ActionResult(True, f"{item.name} deactivated", item)
        p.active_cosmetics.append(item.id)
        self._changed()
        return ActionResult(True, f"{item.name} activated!", item)

    def deactivate_theme(self) -> None:
        if self.profile.active_theme == DEFAULT_THEME:
            return
        self.profile.active_theme = DEFAULT_THEME
        self._changed()

    def is_active(self, item_id: str) -> bool:
        item = get_item(item_id)
        if item is None:
            return False
        if item.kind == ItemKind.THEME:
            return self.profile.active_theme == item_id
        if item.kind == ItemKind.COSMETIC:
            return item_id in self.profile.active_cosmetics
        return False

    # ---- export / import ----

    def export_profile(self) -> dict[str, Any]:
        p = self.profile
        return {
            "xp": p.xp,
            "level": p.level,
            "coins": p.coins,
            "total_coins_earned": p.total_coins_earned,
            "purchased_items": list(p.purchased_items),
            "unlocked_achievements": list(p.unlocked_achievements),
            "stats": p.stats.to_dict(),
            "active_theme": p.active_theme,
            "active_cosmetics": list(p.active_cosmetics),
        }

    def import_profile(self, data: Any) -> None:
        """
        Overwrite known fields from an exported profile; unknown keys are ignored.

        Validation happens before anything is assigned. Unlocked achievements are
        unioned (never removed). Overflowing xp is folded into levels silently.
        """
        clean = validate_profile_data(data)
        p = self.profile

        for name in _INT_FIELDS:
            if name in clean:
                setattr(p, name, clean[name])
        if "purchased_items" in clean:
            p.purchased_items = clean["purchased_items"]
        if "active_cosmetics" in clean:
            p.active_cosmetics = clean["active_cosmetics"]
        if "active_theme" in clean:
            p.active_theme = clean["active_theme"]
        if "unlocked_achievements" in clean:
            for achievement_id in clean["unlocked_achievements"]:
                if achievement_id not in p.unlocked_achievements:
                    p.unlocked_achievements.append(achievement_id)
        if "stats" in clean:
            merged = {**p.stats.to_dict(), **clean["stats"]}
            p.stats = ProfileStats(**merged)

        while p.xp >= xp_threshold(p.level):
            p.xp -= xp_threshold(p.level)
            p.level += 1

        logger.info("Profile imported level=%s coins=%s achievements=%d", p.level, p.coins, len(p.unlocked_achievements))
