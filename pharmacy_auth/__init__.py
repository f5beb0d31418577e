"""
Pharmacy Control - Authentication & Identity service.
"""
