"""Data loading layer for node catalogs, scripts and worlds."""
