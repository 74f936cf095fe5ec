"""Tests for task entities and enums."""
