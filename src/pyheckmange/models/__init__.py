"""Sample-selection models."""
