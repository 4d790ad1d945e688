"""Foundation - core building blocks for callcase.

Contains: type descriptors, errors and results, function descriptions, the
Wrapper contract, and configuration.
"""
