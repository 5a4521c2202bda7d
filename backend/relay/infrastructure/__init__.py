"""Infrastructure Layer — transport adapters, identity collaborators, cross-cutting concerns.

Invariants:
    - Infrastructure implements boundary protocols from core/, never the reverse
    - All external failures mapped to typed RelayError subclasses

Design Decisions:
    - Thin adapters over raw clients: the engine sees Connection and
      CredentialResolver, not Starlette or PyJWT
"""
