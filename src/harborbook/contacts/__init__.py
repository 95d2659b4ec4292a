"""Contact records, the mutation API, and read-only query views."""
