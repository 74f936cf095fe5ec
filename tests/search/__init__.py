"""Tests for the configuration search."""
