"""
Data ingestion modules for RegistryVerify.

Loads customer rosters and raw registry spreadsheets, validates the customer
schema and turns registry matrices into candidates.
"""
