"""Prompting package.

This package contains deterministic instruction-construction helpers used by the
prompt synthesizer. It does not perform model invocation.
"""
