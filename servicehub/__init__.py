"""ServiceHub recurring booking backend."""
