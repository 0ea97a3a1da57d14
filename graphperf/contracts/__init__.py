"""
Contracts Module

Value types shared by every layer. Nothing in here schedules, samples or
aggregates; layers import these types and never each other's internals.

DESIGN PRINCIPLES:
==================
1. Identity and event types are frozen dataclasses
2. Validation happens at construction (ValueError), never later
3. Dangling references are a legal shape, not an error
"""
