"""
RPC transport layer.
"""
