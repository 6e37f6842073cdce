"""
Library Lending MCP Server package.

The lending core of a library: members reserve copies of books for 7, 14
or 21 days, renew, cancel and return them, and see a dashboard of their
loans. Copy counts stay consistent under concurrent requests.

Key Components:
- inventory: the ledger that alone changes a book's available copies
- reservations: the reservation state machine and service
- database: SQLAlchemy schema, sessions and repositories
- models: pydantic models returned to callers
- tools: MCP tools exposing the service
"""

__version__ = "0.1.0"
