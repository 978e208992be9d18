"""ErgoSum — context versioning and sync for AI tooling."""

__version__ = "0.3.0"
