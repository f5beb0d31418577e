"""
Kernel layer: persistence models and the identity core.
"""
