"""Test suite for the macro-engine package.

This package contains unit and integration tests validating craft-loop
rewriting, DSL stepping, scripting-mode execution, module resolution and
capability registration.
"""
