"""Wire models for external glucose services."""
