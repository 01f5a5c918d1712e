"""
                FoodHub Order Core

Order placement, status workflow and restaurant notifications for the
FoodHub food-ordering platform.

Version: 1.0.0
"""

__version__ = "1.0.0"
