"""
demonlist_core - local-first storage and domain logic for the Demon List.
"""

__version__ = "1.0.0"
