"""pagecraft - canvas document model for a visual page builder."""

__version__ = "0.1.0"
