"""Self-registration and approval backend for unattended vending machines."""

__version__ = "0.1.0"
