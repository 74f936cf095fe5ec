"""Tests for metrics and structured logging."""
