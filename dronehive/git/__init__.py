"""Git plumbing used by the registry and lifecycle operations."""
