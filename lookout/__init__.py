"""Lookout: dispatcher for recurring report subscriptions.

Each dispatch cycle finds subscriptions whose next report is due, checks that
the tileset they depend on has data covering the report window, publishes a
report request onto the work queue and advances the subscription's schedule.
"""
