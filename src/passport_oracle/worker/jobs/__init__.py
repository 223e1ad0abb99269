"""Job entrypoints executed by the scheduler or container runtime."""
