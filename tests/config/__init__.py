"""Tests for configuration models, loading and environment handling."""
