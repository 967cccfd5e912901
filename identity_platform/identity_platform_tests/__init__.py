"""
identity_platform_tests package

Tests for the user service: credential store, verifier, token issuer,
login pipeline, database lifecycle and the HTTP application.
"""
