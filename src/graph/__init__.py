"""Entity graph construction and community analysis."""
