"""Service layer for streak business logic.

Services encapsulate the streak rules, keeping routes thin and focused
on HTTP handling:
- The transition, shield and milestone rules in one place
- Orchestration of multiple repositories inside one transaction
- Reusable by both the HTTP routes and the batch CLI

Layer hierarchy:
    Routes (HTTP) -> Services (Business Logic) -> Repositories (Database)

Services should:
- Contain all business rules and validation
- Orchestrate calls to repositories
- Return dataclasses (not ORM models) where appropriate
- Not contain HTTP-specific logic (status codes, response formatting)

Services should NOT:
- Directly execute SQL queries (use repositories)
- Know about HTTP request/response details
- Return Pydantic schema objects (routes do the conversion)
"""
