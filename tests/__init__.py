"""
Test package for boiler.

Unit tests cover the search engine and helpers in isolation; integration
tests drive whole files through a fake encoder backend.
"""
