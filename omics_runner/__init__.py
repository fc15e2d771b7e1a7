"""Run containerized bioinformatics tools on discovered sequencing files."""

__version__ = "0.1.0"
