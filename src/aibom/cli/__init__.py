"""aibom command-line interface."""
