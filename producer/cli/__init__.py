"""``producer`` console script."""
