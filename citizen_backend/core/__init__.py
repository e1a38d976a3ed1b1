"""Core building blocks: error taxonomy, identifier types, HTTP hardening."""
