"""
Matching engine components for RegistryVerify.

Implements weighted fuzzy similarity scoring with categorical bonuses and
threshold-based confidence tiers.
"""
