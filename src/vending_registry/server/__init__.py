"""HTTP surface for device registration and administrative review."""
