"""Object store adapters for uploaded files."""
