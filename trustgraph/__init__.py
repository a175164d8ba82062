"""trustgraph - Identity and access-control core for a social network backend."""

__version__ = "0.1.0"
