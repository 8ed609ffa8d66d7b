"""Chat domain: turn orchestration, tool dispatch, the stream relay and its endpoints."""
