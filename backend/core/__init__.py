"""Core backend infrastructure: configuration, logging, database, errors and
FastAPI dependency helpers used by the application entrypoint."""
