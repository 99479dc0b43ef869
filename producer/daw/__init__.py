"""Host integration layer: the Host Adapter port and its reference implementation."""
