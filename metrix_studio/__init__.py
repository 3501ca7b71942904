"""
Metrix Studio: client core for exploring an embedded graph database.
"""

__version__ = "0.1.0"
