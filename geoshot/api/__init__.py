"""HTTP clients for the external geo data providers."""
