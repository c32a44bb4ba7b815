"""Schema inference and value normalization."""
