"""Infrastructure layer for doccrud."""
