"""Domain layer: share records, access gate and payload storage contracts."""
