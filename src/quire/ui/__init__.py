"""Host-facing event definitions and optional Qt adapters."""
