"""Run orchestration, ingestion and concurrency."""
