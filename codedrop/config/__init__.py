"""Environment-driven configuration for the API, workers and stores."""
