"""Review Sync Scheduler service."""
