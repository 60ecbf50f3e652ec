"""Client storage: batched INSERT helper and the client repository."""
