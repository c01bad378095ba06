"""Storage backends for secret backups."""
