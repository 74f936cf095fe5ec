"""Tests for projects, sprints, strategies and the run driver."""
