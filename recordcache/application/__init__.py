"""Application layer: ports consumed by the cache engines."""
