"""
Vinlogg backend package.

A FastAPI service for logging wines: label scanning, tasting logs, a shared
cellar between partnered accounts and food-to-wine matching.
"""

__version__ = "0.1.0"
