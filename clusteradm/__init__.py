"""Options, checks and data building for joining clusters to an Open Cluster Management hub."""

__version__ = "0.1.0"