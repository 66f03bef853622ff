"""Tasks subsystem (models, sorting, recurrence, timer values, TaskStore)."""
