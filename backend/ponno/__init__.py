"""
Ponno marketplace backend package.

REST backend for the agricultural marketplace: districts, farmers' products,
customer orders and district-scoped delivery agents.
"""

__version__ = "1.0.0"
