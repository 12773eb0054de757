"""
nodekeeper keeps the NodePool / NodeClaim / Node triad of an elastic-compute
cluster consistent once the objects exist.
"""

__version__ = "0.1.0"
