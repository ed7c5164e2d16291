"""Reporter: figures and formatted tables."""
