"""
StoreHub

Multi-tenant storefront backend for small retailers: each tenant gets its
own catalog, customers, orders, credit ledger, loyalty program and
automation webhooks, isolated from every other tenant.
"""

__version__ = "1.0.0"
