"""
pomoquest: tasks, focus sessions and a progression layer on top.

Subpackages:
- core: clock, event bus, ports (Protocols), AppState
- tasks: task models and the in-memory TaskStore
- progression: experience/levels/achievements/shop
- persistence: snapshot codec, local cache, file backends, reconciliation
- connectors / cli: console REPL and slash commands
"""

__version__ = "0.1.0"
