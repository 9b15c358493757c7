"""Web boundary layer: API request/response contracts."""
