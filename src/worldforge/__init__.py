"""WorldForge: a local knowledge-graph store for worldbuilding projects."""

__version__ = "0.4.0"
