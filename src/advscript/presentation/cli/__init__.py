"""Console host."""
