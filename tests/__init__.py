"""FocusGuard test suite."""
