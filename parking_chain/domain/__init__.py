# File: parking_chain/domain/__init__.py
"""Domain layer: vehicles, stays, billing and the chain aggregates"""
