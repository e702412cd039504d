"""
DataGo - Room-scale AR capture game
Server-side spawn distribution and proximity engine, client-side dead reckoning and FOV projection
"""

__version__ = "1.0.0"
__author__ = "DataGo Team"
