"""Order extractors."""
