"""AI Producer: an LLM music-production assistant embedded in a DAW host."""
