"""Application services for chat orchestration and persistence."""
