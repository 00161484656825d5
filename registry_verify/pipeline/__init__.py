"""
Pipeline orchestration for RegistryVerify.
"""
