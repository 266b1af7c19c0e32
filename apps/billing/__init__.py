"""Bill computation and settlement."""
