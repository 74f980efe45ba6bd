"""
Module: inventory_kernel.selectors.base
Responsibility: Base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain DTOs.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never call session.add(), delete(),
      flush() or commit().
    - DTO return convention: public methods return frozen dataclasses or
      plain values, never ORM instances.
    - Session ownership: the caller owns the session.  Inside a settlement
      the selector reads the settlement's own uncommitted rows.
"""

from sqlalchemy.orm import Session


class BaseSelector:
    """
    Base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs or computed results.
    """

    def __init__(self, session: Session):
        self.session = session
