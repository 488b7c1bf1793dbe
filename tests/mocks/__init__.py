"""Test doubles for the service ports."""
