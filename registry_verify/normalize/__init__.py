"""
Data normalization modules for RegistryVerify.

Handles canonicalization of names and Spanish/Catalan addresses (case,
diacritics, abbreviations, via-type words, house numbers, postal codes).
"""
