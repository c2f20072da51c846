"""Infrastructure layer — store client boundary."""
