"""Per-program memory usage from /proc, without double-counting shared pages."""
