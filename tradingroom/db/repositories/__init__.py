"""Repository functions grouped by domain."""
