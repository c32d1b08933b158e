"""
Topology package exports.

This package provides the device dependency graph consulted by the
topological correlation strategy.
"""

from engine.topology.graph import DependencyGraph, load_topology

__all__ = ["DependencyGraph", "load_topology"]
