"""Scenario persistence: named input sets with their computed results.

See `invoice_roi/scenarios/store.py`.
"""
