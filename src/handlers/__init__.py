"""Lambda entrypoints for the nudge HTTP API and daily schedule."""
