"""Manager events and the broadcast channel that carries them."""
