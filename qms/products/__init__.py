"""Product catalogue and product categories."""
