"""Agricultural marketplace backend core."""
