"""
Test suites package.

Keeps `testsuites` importable so the orchestration framework and the store
service objects can be used from IDEs, scripts and CI jobs as well as from
the pytest suites.
"""
