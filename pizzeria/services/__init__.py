"""
                        Services Module

Business logic behind the HTTP routes. Each module works on an
``AsyncSession`` handed in by the caller.

Services:
    - pricing: catalog-driven line and order totals
    - lifecycle: status workflow and timestamp bookkeeping
    - orders: order creation, queries and status changes
    - catalog: product administration
    - accounts: registration, login and account administration
    - reports: sales, product, timing and channel aggregates
    - notifications: real-time order event broadcasting
"""
