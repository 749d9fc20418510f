"""
Package Provisioner — converge installed packages to a declared catalog.
"""

__version__ = "0.1.0"
