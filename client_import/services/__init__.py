"""Import pipeline services: validation, orchestration, progress and summary."""
