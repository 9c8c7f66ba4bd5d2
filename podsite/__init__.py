"""podsite: a documentation site generator for Pod6-style markup corpora."""

__version__ = "0.1.0"
