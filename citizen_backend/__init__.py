"""Citizen backend: GDPR user data processing requests and message listing."""

__version__ = "0.1.0"
