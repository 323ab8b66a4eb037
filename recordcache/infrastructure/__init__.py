"""Infrastructure: Redis cache engines and storage backends."""
