"""
Setup script for yieldsync.

This file exists for backward compatibility with older pip versions
and editable installs. Configuration is in pyproject.toml.
"""

from setuptools import setup

if __name__ == "__main__":
    setup()
