"""
CampusConnect Progression Test Suite
====================================

Test Organization
-----------------
- tests/unit/          : Fast unit tests (no database)
- tests/integration/   : Service tests against a per-test SQLite database

Use the ``unit`` and ``integration`` markers to run a subset.
"""
