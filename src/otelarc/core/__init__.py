"""Core domain: models, transformations, codec and ports."""
