"""
Result aggregation and summary reporting for RegistryVerify.
"""
