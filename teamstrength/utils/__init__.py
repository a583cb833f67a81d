"""Utility functions and helpers for teamstrength.

This module provides common utilities including type definitions,
decorators, error classes and shared defaults used across the package.

Submodules:
    - typing: Type definitions and aliases
    - decorators: Input validation decorators
    - errors: Exceptions raised by the library
    - utils: Default values and parameter naming helpers

"""
