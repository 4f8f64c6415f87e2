"""
Networking

JSON-RPC access to a Solana node, configured by an explicit ClusterConfig.
"""

from .rpc import RPCClient

__all__ = ['RPCClient']
