"""Tests for interpolation."""
