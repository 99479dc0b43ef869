"""Conversation core: tool registry, transcript, streaming and the agent loop."""
