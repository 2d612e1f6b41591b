"""Time-clock ingestion: format adapters, employee resolution and batch import."""
