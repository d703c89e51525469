"""Settings, persistence and logging setup."""
