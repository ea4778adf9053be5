"""Domain layer: request records, chain policies, the authorization gate and read models."""
