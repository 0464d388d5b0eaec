"""Block Access List client-adoption tracker.

Absorbs Hive conformance-run exports into per-EIP test catalogs and derives
per-client adoption statistics from them.
"""
