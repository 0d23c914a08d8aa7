"""JSON Schema contracts for events and persisted trade records."""
