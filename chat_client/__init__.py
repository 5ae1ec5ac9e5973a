"""Terminal client for the conversation backend."""
