"""
Asset health scoring service.

Recomputes predictive health scores for every active asset across tenants,
persists one score row per asset, and raises per-tenant alerts for assets
that fall into the high or critical risk tiers.
"""
