"""
Utility package
"""
