"""Feature modules of the particle field."""
