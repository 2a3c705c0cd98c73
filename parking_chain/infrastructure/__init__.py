# File: parking_chain/infrastructure/__init__.py
"""Infrastructure layer: record file and relational repositories"""
