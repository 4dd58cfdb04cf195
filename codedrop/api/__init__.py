"""HTTP API for CodeDrop."""
