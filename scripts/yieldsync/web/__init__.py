"""
HTTP trigger and administration endpoints.
"""
