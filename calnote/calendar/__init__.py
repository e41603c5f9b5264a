"""Feed fetching, decoding and recurrence expansion."""
