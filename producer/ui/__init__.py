"""Chat view model, auto-scroll policy and terminal renderer."""
