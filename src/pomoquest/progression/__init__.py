"""Progression subsystem (experience, levels, achievements, coins, shop)."""
