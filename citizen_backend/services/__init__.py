"""Business services: request lifecycle, message listing, welcome messages."""
