"""
Core: configuration, identity, permissions and access evaluation
"""
