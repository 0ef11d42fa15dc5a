"""Service layer helpers (settings, bundled collaborators)."""
