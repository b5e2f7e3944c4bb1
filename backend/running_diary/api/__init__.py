"""HTTP surface for the running diary backend."""
