"""Royalty operations back office.

Reconciliation batches, payouts, expenses and the operations dashboard
(customer health, support tickets, revenue analytics, alerts, automation
rules and the canned-response assistant).
"""

__version__ = "0.1.0"
