"""Test suite for the timestamping registry (unit + property)."""
