"""
Pydantic shapes: use-case results and RPC wire messages.
"""
