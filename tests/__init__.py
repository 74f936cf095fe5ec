"""sprintsim test suite."""
