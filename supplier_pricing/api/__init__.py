"""HTTP API for the supplier pricing service."""
