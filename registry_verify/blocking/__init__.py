"""
Blocking strategies for RegistryVerify.

Implements the postal code / municipality / capped-scan cascade that keeps
customer x registry comparisons tractable.
"""
