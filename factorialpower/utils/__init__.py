"""
Factorial Power Analysis Utilities Package.
Internal utilities - not part of public API.
"""
