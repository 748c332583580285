"""Record transformers."""
