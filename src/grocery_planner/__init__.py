"""
Grocery route planner: catalog lookups, price comparison, shopping list,
store roster and visit ordering.
"""

__version__ = "0.1.0"
