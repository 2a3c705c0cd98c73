# File: parking_chain/presentation/__init__.py
"""Presentation layer: the interactive console"""
