"""Linearizability checking and visualization, a state persister and shard configuration tools."""

__version__ = "0.1.0"