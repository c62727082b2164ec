"""Storage services for the boards tree."""
