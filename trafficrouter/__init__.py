"""Gloo Platform traffic router for progressive rollouts.

Shifts traffic between the "stable" and "canary" services of a rollout by
rewriting destination weights inside Gloo ``RouteTable`` resources:
 - selects route tables by name or labels
 - selects HTTP routes within them by name or labels
 - sets stable/canary weights, creating the canary destination when missing
 - patches each table back with a merge patch against its original snapshot

The host-facing RPC surface lives in ``main.py``.
"""
