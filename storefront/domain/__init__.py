"""
storefront.domain — Shared enumerations and value types.

Nothing in here imports from other storefront sub-packages (stdlib only).
"""
