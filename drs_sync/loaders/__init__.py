"""Record loaders."""
