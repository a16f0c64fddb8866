"""Terminal rendering for trep summaries."""
