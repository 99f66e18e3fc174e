"""Tests for cost functions."""
