"""Core building blocks: clock, event bus, ports and the application state."""
