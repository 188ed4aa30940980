"""archgraph: layout and clustering core for large code-architecture graphs."""

__version__ = "0.3.0"
