"""Tests for the Card Table engine."""
