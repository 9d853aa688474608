"""RecycloScan pickup service."""
