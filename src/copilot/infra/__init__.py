"""Infrastructure: lifespan wiring, state backends, logging, tracing."""
