"""
                Pizzeria Order Management

Order-management backend for a pizzeria: catalog, staff accounts with
role-based permissions, orders through the kitchen lifecycle, real-time
order events and sales reports.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
