# File: parking_chain/application/__init__.py
"""Application layer: the session service and its DTOs"""
