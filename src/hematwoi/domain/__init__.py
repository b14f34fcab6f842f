"""Domain-level definitions shared across layers."""
