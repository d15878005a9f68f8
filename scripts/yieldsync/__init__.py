"""
yieldsync - keeps DeFi pool yield and TVL metrics fresh by polling protocol APIs.
"""

__version__ = "1.0.0"
