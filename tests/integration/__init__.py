"""tests.integration package

Integration-level suites that drive the document server through its HTTP
interface with FastAPI's ``TestClient``.  Run only the fast unit subset with
``pytest -m "not integration"``.
"""
