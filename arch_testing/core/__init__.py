"""Core lifecycle: configuration, readiness, offload, teardown and the runner."""
