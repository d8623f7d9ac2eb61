"""POI coordinate validation, duplicate detection and dataset comparison."""
