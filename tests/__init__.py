"""Tests for the Parking Chain package"""
