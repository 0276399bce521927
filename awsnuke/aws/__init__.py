"""AWS session, client and account helpers."""
