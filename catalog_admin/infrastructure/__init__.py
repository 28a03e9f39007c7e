"""Infrastructure layer: configuration, logging and the remote backend."""
