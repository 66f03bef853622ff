"""Front-ends and side-effect sinks (console REPL, sound/theme cues)."""
