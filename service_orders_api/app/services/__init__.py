"""
Service layer abstraction.

Each service encapsulates business logic for a domain and talks to
SQLite through ``core.db``.  API handlers stay thin: they authorize,
parse the request and shape the response.
"""
