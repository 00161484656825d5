"""
RegistryVerify - Healthcare Registry Reconciliation Engine

Matches a customer roster against official registries of healthcare
establishments using deterministic normalization, blocking and weighted
similarity scoring.
"""

__version__ = "1.0.0"
__author__ = "RegistryVerify Team"
