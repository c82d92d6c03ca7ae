"""Chronicle: entity graph and ordering engine for narrative projects."""

__version__ = "0.1.0"
