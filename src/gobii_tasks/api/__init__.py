"""Remote execution clients (Gobii HTTP API and the offline demo client)."""
