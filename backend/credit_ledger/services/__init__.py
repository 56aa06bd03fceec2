"""Services — the imperative shell around core/ rules.

Invariants:
    - Services receive an AsyncSession (or a session scope) and an explicit account id
    - No service reads ambient "current user" state
"""
