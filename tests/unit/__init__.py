"""
Unit Tests Package

Domain models, aggregates, DTOs, the application service and the
repositories, each tested in isolation.
"""
