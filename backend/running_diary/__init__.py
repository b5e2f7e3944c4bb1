"""Running diary backend: club membership, events and notifications."""

__version__ = "0.1.0"
