# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Use:
- .env (local, gitignored)

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "POMO_APP_NAME": "App display name (default: pomoquest).",
    "POMO_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "POMO_DATA_DIR": "Local data directory for the cache and logs (default: .local/pomoquest).",
    "POMO_CACHE_DB_PATH": "SQLite cache path (default: <data_dir>/cache.sqlite3).",
    # External JSON file
    "POMO_FILE_BACKEND": "path (re-openable paths) or handle (per-session handles). Default: path.",
    "POMO_AUTO_RECONNECT": "Reopen the remembered data file on startup (true/false, default: true).",
    # Tasks
    "POMO_CATEGORIES": "Comma separated default categories (default: Work,Personal,Study,Fitness).",
    # Timer (minutes)
    "POMO_WORK_MINUTES": "Focus interval length (default: 25).",
    "POMO_SHORT_BREAK_MINUTES": "Short break length (default: 5).",
    "POMO_LONG_BREAK_MINUTES": "Long break length (default: 15).",
    "POMO_LONG_BREAK_EVERY": "Every N-th completed session earns a long break (default: 4).",
    # Notifications (seconds)
    "POMO_LEVEL_UP_NOTICE_SECONDS": "How long a level-up notice stays visible (default: 5).",
    "POMO_ACHIEVEMENT_NOTICE_SECONDS": "How long an achievement notice stays visible (default: 4).",
}
