"""Worker entrypoints for scheduled oracle runs."""
