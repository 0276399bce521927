"""Data models for teardown tasks and runs."""
