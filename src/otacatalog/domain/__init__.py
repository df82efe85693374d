"""Domain layer: image header codec, catalog model and reconciliation."""
