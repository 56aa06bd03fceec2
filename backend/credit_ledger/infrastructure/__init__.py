"""Infrastructure Layer — database access and cross-cutting concerns.

Invariants:
    - Infrastructure never imports domain rules from core/ (errors excepted)
    - All SQLAlchemy failures surface as DatabaseError
"""
