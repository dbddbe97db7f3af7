"""Law-firm platform backend."""
