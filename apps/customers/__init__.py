"""
Customers App - Customer records for billing.

Holds the customer side of settlement: lifetime spend, purchase count,
average order value, loyalty balance and tier. Records are edited through
the admin; billing mutates statistics only through
``apps.customers.services``.
"""
