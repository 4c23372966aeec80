"""Built-in pieces of the scripting sandbox.

Provides the restricted builtins of script namespaces, the expression
lookup behind string interpolation, and the always-registered `Internal`
capability.
"""
