"""
                        Services Module

Business logic behind the API.

Services:
    - orders: order placement, status workflow, listings, payment records
    - notifications: new-order messages with Mock (development) and
      Real (production) transports
"""
