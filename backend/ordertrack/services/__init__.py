"""Services module.

This module provides the service layer architecture:
- exceptions: Custom service exceptions
- catalog: Countries, machines and panels
- serials: Serial number allocation and lookup
- orders: Order creation with serial fan-out, updates and deletion
- auth: Users, password hashing and access tokens
"""
