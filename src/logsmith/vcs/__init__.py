"""Version control access."""
