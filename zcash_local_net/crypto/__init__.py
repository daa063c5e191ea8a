"""
Key and certificate helpers for processes served over TLS
"""
